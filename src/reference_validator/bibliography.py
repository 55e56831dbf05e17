"""Locate the bibliography section in full document text and map offsets to pages.

Headers are searched over the whole document and the rightmost hit wins,
since "references" often also appears in a table of contents or in prose.
When no header is present, numbered-list starts near the end of the
document are tried, then a line-level heuristic over the last 30%.
"""

import logging
import re
import unicodedata
from typing import Optional, Sequence

from .models import BibliographySection, DocumentPage, DocumentText, Reference

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

HEADER_PATTERNS = [
    re.compile(r"\n\s*references\s*\n", _I),
    re.compile(r"\n\s*reference\s*\n", _I),
    re.compile(r"\n\s*bibliography\s*\n", _I),
    re.compile(r"\n\s*works\s+cited\s*\n", _I),
    re.compile(r"\n\s*literature\s+cited\s*\n", _I),
    re.compile(r"\n\s*cited\s+literature\s*\n", _I),
    re.compile(r"\n\s*references\s*$", _I | re.MULTILINE),
    re.compile(r"\n\s*reference\s*$", _I | re.MULTILINE),
    re.compile(r"^references\s*\n", _I | re.MULTILINE),
    re.compile(r"^reference\s*\n", _I | re.MULTILINE),
    re.compile(r"\breferences\s*\n", _I),
    re.compile(r"\breference\s*\n", _I),
    re.compile(r"\bbibliography\s*\n", _I),
    re.compile(r"\b[IVX]+\.\s*references?\b", _I),
    re.compile(r"\b\d+\.?\s*references?\b", _I),
    re.compile(r"\bREFERENCES\b"),
    re.compile(r"\bREFERENCE\b"),
    re.compile(r"\bBIBLIOGRAPHY\b"),
    re.compile(r"\breferences?\s*:", _I),
    re.compile(r"\breferences?[.:]?\s*(?:\n|$)", _I),
]

NUMBERED_START_PATTERNS = [
    re.compile(r"\n\s*\[1\]\s+"),
    re.compile(r"\n\s*1\.\s+[A-Z]"),
    re.compile(r"\n\s*\(1\)\s+"),
    re.compile(r"\n\s*1(?=\S)"),
    re.compile(r"\n\s*1\s+[A-Z]"),
    re.compile(r"\n\s*\[1\]"),
    re.compile(r"\n\s*1\.\s*[A-Z]"),
]

REFERENCE_LINE_INDICATORS = [
    re.compile(r"\d{4}"),
    re.compile(r"[A-Z][a-z]+\s+[A-Z]"),
    re.compile(r"doi:", _I),
    re.compile(r"http"),
    re.compile(r"\[.*\]"),
    re.compile(r"\d+\.\s+[A-Z]"),
]

END_MARKERS = re.compile(
    r"\n\s*(appendix|acknowledgments?|acknowledgements?|supplementary"
    r"|author\s+contributions|competing\s+interests"
    r"|data\s+availability|code\s+availability)",
    _I,
)

NUMBERED_SEARCH_FRACTION = 0.4
HEURISTIC_SEARCH_FRACTION = 0.3
HEURISTIC_LINES = 20
HEURISTIC_MIN_RATIO = 0.3
HEURISTIC_MIN_LINES = 5


def _find_header_start(text: str) -> Optional[int]:
    best: Optional[re.Match] = None
    for pattern in HEADER_PATTERNS:
        for match in pattern.finditer(text):
            if best is None or match.start() > best.start():
                best = match
    if best is None:
        return None
    logger.debug("Bibliography header %r at offset %d", best.group(0).strip(), best.start())
    return best.end()


def _find_numbered_start(text: str) -> Optional[int]:
    offset = int(len(text) * (1 - NUMBERED_SEARCH_FRACTION))
    tail = text[offset:]
    for pattern in NUMBERED_START_PATTERNS:
        matches = list(pattern.finditer(tail))
        if matches:
            # Skip the newline so the section starts at the marker itself
            return offset + matches[-1].start() + 1
    return None


def _is_reference_like(line: str) -> bool:
    return any(p.search(line) for p in REFERENCE_LINE_INDICATORS)


def _find_heuristic_start(text: str) -> Optional[int]:
    offset = int(len(text) * (1 - HEURISTIC_SEARCH_FRACTION))
    lines = [l for l in text[offset:].split("\n") if l.strip()][:HEURISTIC_LINES]
    if not lines:
        return None
    hits = sum(1 for line in lines if _is_reference_like(line))
    if hits / len(lines) >= HEURISTIC_MIN_RATIO and hits > HEURISTIC_MIN_LINES:
        return offset
    return None


def _find_end(text: str, start: int) -> int:
    match = END_MARKERS.search(text, start)
    return match.start() if match else len(text)


def page_for_index(pages: Sequence[DocumentPage], index: int) -> int:
    """Map an absolute character offset to a 1-based page number."""
    if not pages:
        return 1
    offset = 0
    for page in pages:
        offset += len(page.text) + 2
        if index < offset:
            return page.page_number
    return pages[-1].page_number


def find_page_range(pages: Sequence[DocumentPage], start: int, end: int) -> tuple[int, int]:
    return page_for_index(pages, start), page_for_index(pages, max(start, end - 1))


def locate_bibliography(document: DocumentText) -> Optional[BibliographySection]:
    """Find the bibliography span, or None when nothing looks like one."""
    text = document.full_text
    if not text.strip():
        return None

    start = _find_header_start(text)
    method = "header"
    if start is None:
        start = _find_numbered_start(text)
        method = "numbered list"
    if start is None:
        start = _find_heuristic_start(text)
        method = "line heuristic"
    if start is None:
        logger.warning("No bibliography section found (%d chars searched)", len(text))
        return None

    end = _find_end(text, start)
    section_text = text[start:end].strip()
    if not section_text:
        logger.warning("Bibliography header found but section is empty")
        return None

    start_page, end_page = find_page_range(document.pages, start, end)
    logger.info(
        "Bibliography located by %s: offsets %d-%d, pages %d-%d",
        method,
        start,
        end,
        start_page,
        end_page,
    )
    return BibliographySection(
        text=section_text,
        start_page=start_page,
        end_page=end_page,
        start_index=start,
    )


# ---------------------------------------------------------------------------
# Page backfill for references that arrive without a page number
# ---------------------------------------------------------------------------


def _alnum_projection(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"[^a-z0-9]", "", stripped.lower())


def _search_terms(ref: Reference) -> list[str]:
    terms = []
    if len(ref.raw_text) > 15:
        terms.append(ref.raw_text[:120])
    if len(ref.title) > 15:
        terms.append(ref.title)
    if ref.authors and ref.title:
        terms.append(f"{ref.authors[0]} {ref.title}")
    return terms


def _find_offset(haystack: str, term: str) -> Optional[int]:
    index = haystack.lower().find(term.lower())
    if index >= 0:
        return index
    projected_haystack = _alnum_projection(haystack)
    projected_term = _alnum_projection(term)
    if not projected_term or not projected_haystack:
        return None
    index = projected_haystack.find(projected_term)
    if index < 0:
        return None
    return int(index / len(projected_haystack) * len(haystack))


def assign_page_numbers(
    references: list[Reference],
    document: DocumentText,
    section: Optional[BibliographySection],
    fallback_page: int = 1,
) -> list[Reference]:
    """Fill in page_number for references that lack one."""
    base = section.start_index if section else 0
    haystack = document.full_text[base:]

    assigned: list[Reference] = []
    for ref in references:
        if ref.page_number is not None:
            assigned.append(ref)
            continue
        page = fallback_page
        for term in _search_terms(ref):
            offset = _find_offset(haystack, term)
            if offset is not None:
                page = page_for_index(document.pages, base + offset)
                break
        assigned.append(ref.model_copy(update={"page_number": page}))
    return assigned
