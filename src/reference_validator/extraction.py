"""Extraction pipeline: document text -> bibliography -> structured references.

The bibliography is located first. References then come from, in order of
preference: an LLM extractor run over the located text, an external
document-structuring service, or the regex strategy cascade in `parsers`.
A failing or empty LLM run falls back to the next option. Either way every
reference ends up with the page number it starts on.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Protocol

from .bibliography import assign_page_numbers, locate_bibliography, page_for_index
from .models import (
    BibliographySection,
    DocumentText,
    ExtractedReference,
    ExtractionMethod,
    ExtractionResult,
    Reference,
)
from .parsers import extract_references, normalize_bibliography_text
from .pdf_parser import load_document

logger = logging.getLogger(__name__)

# Share of the document treated as the bibliography when none is located
TAIL_FRACTION = 0.2

# Leading words of an entry used to find it again in the raw text
ANCHOR_TOKENS = 6


class DocumentStructurer(Protocol):
    """A service that turns raw file bytes into pre-parsed references.

    Such services do not report page numbers; those are back-filled from
    the document text.
    """

    async def structure(self, file_bytes: bytes) -> list[Reference]: ...


class ReferenceTextExtractor(Protocol):
    """Structures bibliography text into references (e.g. with an LLM)."""

    async def extract(self, text: str) -> list[Reference]: ...


def _to_reference(ref: ExtractedReference, page_number: int) -> Reference:
    data = ref.model_dump(exclude={"relative_index"})
    data["page_number"] = page_number
    return Reference(**data)


def _entry_pattern(raw_text: str) -> Optional[re.Pattern]:
    tokens = raw_text.split()[:ANCHOR_TOKENS]
    if not tokens:
        return None
    return re.compile(r"\s+".join(re.escape(t) for t in tokens))


def _place_references(
    references: list[ExtractedReference],
    document: DocumentText,
    section_text: str,
    base_index: int,
) -> list[Reference]:
    """Map offsets in the normalized section back to document pages.

    Each entry's leading words are searched in the raw section, in order.
    When that fails (e.g. a word was de-hyphenated) the normalized offset
    is scaled by the raw/normalized length ratio instead.
    """
    normalized_length = len(normalize_bibliography_text(section_text)) or 1
    ratio = len(section_text) / normalized_length

    placed = []
    cursor = 0
    for ref in references:
        pattern = _entry_pattern(ref.raw_text)
        match = pattern.search(section_text, cursor) if pattern else None
        if match:
            offset = match.start()
            cursor = match.end()
        else:
            offset = min(int(ref.relative_index * ratio), max(len(section_text) - 1, 0))
            while offset < len(section_text) - 1 and section_text[offset].isspace():
                offset += 1
        placed.append(_to_reference(ref, page_for_index(document.pages, base_index + offset)))
    return placed


def _bibliography_text(
    document: DocumentText,
    section: Optional[BibliographySection],
    source: str,
) -> tuple[str, int]:
    """The text to parse and its offset in the full document text."""
    if section is not None:
        base_index = section.start_index + document.full_text[section.start_index:].find(section.text[:1])
        return section.text, max(base_index, 0)
    logger.warning("No reference section found in %s. Using last portion of text.", source or "document")
    base_index = int(len(document.full_text) * (1 - TAIL_FRACTION))
    return document.full_text[base_index:], base_index


async def _extract_with_llm(
    extractor: ReferenceTextExtractor,
    document: DocumentText,
    section: Optional[BibliographySection],
    source: str,
) -> list[Reference]:
    section_text, base_index = _bibliography_text(document, section, source)
    references = await extractor.extract(section_text)
    fallback_page = section.start_page if section else page_for_index(document.pages, base_index)
    return assign_page_numbers(references, document, section, fallback_page=fallback_page)


async def _extract_structured(
    structurer: DocumentStructurer,
    document: DocumentText,
    section: Optional[BibliographySection],
    file_bytes: bytes,
    source: str,
) -> ExtractionResult:
    start_page = section.start_page if section else None
    end_page = section.end_page if section else None
    try:
        structured = await structurer.structure(file_bytes)
    except Exception as e:
        logger.error("Document structuring failed: %s", e)
        return ExtractionResult(
            source=source,
            references=[],
            bibliography_start_page=start_page,
            bibliography_end_page=end_page,
            method=ExtractionMethod.STRUCTURED,
            error=f"Document structuring failed: {e}",
        )
    references = assign_page_numbers(structured, document, section, fallback_page=start_page or 1)
    logger.info("Structuring service returned %d references", len(references))
    return ExtractionResult(
        source=source,
        references=references,
        bibliography_start_page=start_page,
        bibliography_end_page=end_page,
        method=ExtractionMethod.STRUCTURED,
    )


def _extract_regex(
    document: DocumentText,
    section: Optional[BibliographySection],
    source: str,
) -> ExtractionResult:
    section_text, base_index = _bibliography_text(document, section, source)
    parsed = extract_references(section_text, start_page=page_for_index(document.pages, base_index))
    references = _place_references(parsed, document, section_text, base_index)

    logger.info("Extracted %d references from %s", len(references), source or "document")
    return ExtractionResult(
        source=source,
        references=references,
        bibliography_start_page=section.start_page if section else None,
        bibliography_end_page=section.end_page if section else None,
        method=ExtractionMethod.REGEX,
        error=None if references else "No references found",
    )


async def extract_from_document(
    document: DocumentText,
    structurer: Optional[DocumentStructurer] = None,
    file_bytes: bytes = b"",
    source: str = "",
    extractor: Optional[ReferenceTextExtractor] = None,
) -> ExtractionResult:
    """Locate the bibliography in `document` and extract its references."""
    section = locate_bibliography(document)

    notice = None
    if extractor is not None:
        try:
            references = await _extract_with_llm(extractor, document, section, source)
        except Exception as e:
            logger.warning("LLM extraction failed: %s", e)
            notice = f"LLM extraction failed: {e}."
        else:
            if references:
                logger.info("LLM extracted %d references from %s", len(references), source or "document")
                return ExtractionResult(
                    source=source,
                    references=references,
                    bibliography_start_page=section.start_page if section else None,
                    bibliography_end_page=section.end_page if section else None,
                    method=ExtractionMethod.LLM,
                )
            logger.warning("LLM returned no references, falling back")
            notice = "LLM extraction returned no references."

    if structurer is not None:
        result = await _extract_structured(structurer, document, section, file_bytes, source)
    else:
        result = _extract_regex(document, section, source)

    if notice is None:
        return result
    error = f"{notice} Using {result.method.value} fallback."
    if result.error:
        error = f"{error} {result.error}"
    return result.model_copy(update={"error": error})


async def extract_from_pdf(
    path: str | Path,
    structurer: Optional[DocumentStructurer] = None,
    extractor: Optional[ReferenceTextExtractor] = None,
) -> ExtractionResult:
    """Full pipeline for a file on disk: load pages, then extract."""
    path = Path(path)
    document = load_document(path)
    file_bytes = path.read_bytes() if structurer is not None else b""
    return await extract_from_document(
        document, structurer, file_bytes=file_bytes, source=str(path), extractor=extractor
    )
