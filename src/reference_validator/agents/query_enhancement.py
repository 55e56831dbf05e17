"""Query enhancement: ask a local LLM for alternative search queries."""

import logging

from ..models import QueryVariant, QueryVariantList, Reference
from ..ollama_client import OllamaClient
from ..prompts import QUERY_ENHANCEMENT_PROMPT_TEMPLATE, QUERY_ENHANCEMENT_SYSTEM_PROMPT
from .base import original_query

logger = logging.getLogger(__name__)

MAX_VARIANTS = 5
FALLBACK_DESCRIPTION = "Original query (fallback)"


class OllamaQueryEnhancer:
    def __init__(self, client: OllamaClient):
        self.client = client

    async def generate(self, reference: Reference) -> list[QueryVariant]:
        prompt = QUERY_ENHANCEMENT_PROMPT_TEMPLATE.format(
            title=reference.title or "N/A",
            authors=", ".join(reference.authors) or "N/A",
            year=reference.year or "N/A",
            venue=reference.venue or "N/A",
        )
        try:
            result = await self.client.chat_structured(
                prompt=prompt,
                response_model=QueryVariantList,
                system_prompt=QUERY_ENHANCEMENT_SYSTEM_PROMPT,
            )
        except Exception as e:
            logger.warning("Query enhancement failed for '%s': %s", reference.title[:50], e)
            return [original_query(reference, FALLBACK_DESCRIPTION)]

        variants = [v for v in result.variants if v.title or v.authors][:MAX_VARIANTS]
        if not variants:
            logger.warning("Query enhancement returned no usable variants")
            return [original_query(reference, FALLBACK_DESCRIPTION)]

        logger.info(
            "Generated %d query variants: %s",
            len(variants),
            [v.description for v in variants],
        )
        return variants
