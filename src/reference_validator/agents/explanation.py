"""Explain why a reference could not be found, with an LLM or a fixed template."""

import logging

from ..models import AttemptedQuery, Reference, ValidationSource
from ..ollama_client import OllamaClient
from ..prompts import EXPLANATION_PROMPT_TEMPLATE, EXPLANATION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def build_context(
    reference: Reference,
    attempted_queries: list[AttemptedQuery],
    sources: list[ValidationSource],
) -> str:
    lines = [
        "Reference to find:",
        f"- Title: {reference.title or 'N/A'}",
        f"- Authors: {', '.join(reference.authors) or 'N/A'}",
        f"- Year: {reference.year or 'N/A'}",
        f"- Venue: {reference.venue or 'N/A'}",
        "",
        f"Queries attempted ({len(attempted_queries)}):",
    ]
    for i, query in enumerate(attempted_queries, 1):
        year = f" ({query.year})" if query.year else ""
        lines.append(f'{i}. {query.description}: "{query.title}" by {", ".join(query.authors)}{year}')

    lines.append("")
    lines.append(f"Sources queried ({len(sources)}):")
    for source in sources:
        if source.found:
            outcome = f"found, score {source.match_score:.2f}"
        elif source.errors:
            outcome = f"error: {'; '.join(source.errors)}"
        else:
            outcome = "not found"
        step = f" [{source.step.value}]" if source.step else ""
        lines.append(f"- {source.name.value}{step}: {outcome}")
    return "\n".join(lines)


def fallback_explanation(
    reference: Reference,
    attempted_queries: list[AttemptedQuery],
    sources: list[ValidationSource],
) -> str:
    tried = ", ".join(dict.fromkeys(s.name.value for s in sources)) or "none"
    found = sum(1 for s in sources if s.found)
    if found:
        outcome = "Some APIs returned results but with low confidence scores."
    else:
        outcome = "No APIs found matching results."
    return (
        f"Reference not found after trying {len(attempted_queries)} query variations "
        f"across {len(sources)} APIs ({tried}). {outcome} Possible reasons: typo in "
        "extracted reference, very new/obscure paper, non-indexed source, or formatting "
        "issues. Please verify the reference manually."
    )


class OllamaExplainer:
    def __init__(self, client: OllamaClient):
        self.client = client

    async def explain(
        self,
        reference: Reference,
        attempted_queries: list[AttemptedQuery],
        sources: list[ValidationSource],
    ) -> str:
        prompt = EXPLANATION_PROMPT_TEMPLATE.format(
            context=build_context(reference, attempted_queries, sources)
        )
        try:
            text = (await self.client.chat_raw(prompt, system_prompt=EXPLANATION_SYSTEM_PROMPT)).strip()
        except Exception as e:
            logger.warning("Explanation LLM call failed: %s", e)
            return fallback_explanation(reference, attempted_queries, sources)
        return text or fallback_explanation(reference, attempted_queries, sources)
