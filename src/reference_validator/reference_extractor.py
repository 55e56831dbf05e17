"""Extract structured references from bibliography text using a local LLM.

Sends the bibliography text to Ollama and gets back structured Reference
objects. Large bibliographies are split into batches by character count
to stay within the model's context window.
"""

import logging

from .models import LLMReference, LLMReferenceList, Reference
from .ollama_client import OllamaClient
from .prompts import EXTRACTION_PROMPT_TEMPLATE, EXTRACTION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

CHARS_PER_BATCH = 8000


def split_into_batches(text: str, chars_per_batch: int = CHARS_PER_BATCH) -> list[str]:
    """Split text into batches of whole lines, each at most chars_per_batch long.

    A single line longer than the limit becomes its own batch.
    """
    batches = []
    current: list[str] = []
    current_len = 0

    for line in text.split("\n"):
        if current_len + len(line) > chars_per_batch and current:
            batches.append("\n".join(current))
            current = []
            current_len = 0
        current.append(line)
        current_len += len(line) + 1

    if current:
        batches.append("\n".join(current))

    return [b for b in batches if b.strip()]


def _to_reference(entry: LLMReference) -> Reference:
    raw_text = entry.raw_text
    if not raw_text:
        parts = [", ".join(entry.authors), entry.title, entry.venue, entry.year]
        raw_text = ". ".join(p for p in parts if p)
    return Reference(
        raw_text=raw_text,
        title=entry.title,
        authors=entry.authors,
        year=entry.year,
        venue=entry.venue,
        doi=entry.doi,
        urls=entry.urls,
    )


class OllamaReferenceExtractor:
    """Turns located bibliography text into references, batch by batch.

    Connection and schema errors propagate; the extraction pipeline falls
    back to the regex cascade on failure.
    """

    def __init__(self, client: OllamaClient, chars_per_batch: int = CHARS_PER_BATCH):
        self.client = client
        self.chars_per_batch = chars_per_batch

    async def extract(self, text: str) -> list[Reference]:
        batches = split_into_batches(text, self.chars_per_batch)
        references: list[Reference] = []

        for i, batch in enumerate(batches):
            logger.info("Processing batch %d/%d (%d chars)", i + 1, len(batches), len(batch))
            result = await self.client.chat_structured(
                prompt=EXTRACTION_PROMPT_TEMPLATE.format(reference_text=batch),
                response_model=LLMReferenceList,
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
            )
            references.extend(_to_reference(e) for e in result.references if e.title or e.raw_text)

        for i, ref in enumerate(references):
            ref.citation_number = i + 1
        return references
