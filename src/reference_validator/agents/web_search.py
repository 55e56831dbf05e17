"""Web search: ask Perplexity to find a reference and decode its answer.

Perplexity usually embeds a JSON object in its reply. When it does not,
or the object has no title, the local LLM is asked to extract the fields
from the prose answer instead.
"""

import json
import logging
import re
from typing import Optional

import httpx
from pydantic import ValidationError

from ..models import Reference, RetrievedReferenceData
from ..ollama_client import OllamaClient
from ..prompts import (
    WEB_EXTRACTION_PROMPT_TEMPLATE,
    WEB_SEARCH_QUERY_TEMPLATE,
    WEB_SEARCH_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)

PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
PERPLEXITY_MODEL = "sonar-pro"
MAX_EXTRACTION_CHARS = 2000

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def build_search_query(reference: Reference) -> str:
    parts = []
    if reference.title:
        parts.append(f'"{reference.title}"')
    if reference.authors:
        parts.append(f"by {reference.authors[0]}")
    if reference.year:
        parts.append(f"published {reference.year}")
    return WEB_SEARCH_QUERY_TEMPLATE.format(description=" ".join(parts))


def decode_record(answer: str) -> Optional[RetrievedReferenceData]:
    """Pull a reference record out of a free-text answer; None if there is none."""
    match = _JSON_OBJECT.search(answer or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict) or not parsed.get("title"):
        return None
    try:
        return RetrievedReferenceData.model_validate(
            {
                "title": parsed.get("title"),
                "authors": parsed.get("authors"),
                "year": parsed.get("year"),
                "venue": parsed.get("venue") or parsed.get("journal") or parsed.get("conference"),
                "doi": parsed.get("doi"),
                "url": parsed.get("url") or parsed.get("link"),
            }
        )
    except ValidationError as e:
        logger.debug("Web search JSON did not fit the record schema: %s", e)
        return None


class PerplexityWebSearcher:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        extractor: Optional[OllamaClient] = None,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.extractor = extractor

    async def _ask(self, query: str) -> str:
        response = await self.http_client.post(
            PERPLEXITY_API_URL,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": PERPLEXITY_MODEL,
                "messages": [
                    {"role": "system", "content": WEB_SEARCH_SYSTEM_PROMPT},
                    {"role": "user", "content": query},
                ],
                "temperature": 0.1,
                "max_tokens": 1000,
            },
        )
        response.raise_for_status()
        choices = response.json().get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    async def _extract_with_llm(self, answer: str) -> Optional[RetrievedReferenceData]:
        if self.extractor is None or not answer.strip():
            return None
        try:
            record = await self.extractor.chat_structured(
                prompt=WEB_EXTRACTION_PROMPT_TEMPLATE.format(text=answer[:MAX_EXTRACTION_CHARS]),
                response_model=RetrievedReferenceData,
            )
        except Exception as e:
            logger.warning("LLM extraction from web answer failed: %s", e)
            return None
        return record if record.title else None

    async def search(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        try:
            answer = await self._ask(build_search_query(reference))
        except Exception as e:
            logger.warning("Perplexity search failed for '%s': %s", reference.title[:50], e)
            return None

        record = decode_record(answer)
        if record is None:
            record = await self._extract_with_llm(answer)
        if record is None:
            logger.info("Web search returned no structured record for '%s'", reference.title[:50])
        return record
