"""Per-entry field extraction shared by every splitting strategy.

Whatever strategy isolated an entry, the same rules pull DOI, arXiv ID,
URLs, year, title, venue and authors out of its text.
"""

import re
import uuid
from typing import Optional

from ..matching import parse_authors
from ..models import ExtractedReference

MAX_AUTHORS = 10

YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}[a-z]?\b")
DOI_PATTERN = re.compile(
    r"(?:doi[:\s]*|https?://(?:dx\.)?doi\.org/)(10\.\d{4,}/[^\s,;]+)", re.IGNORECASE
)
DOI_PATTERN_LOOSE = re.compile(
    r"(?:doi[:\s]*|https?://(?:dx\.)?doi\.org/)?(10\.\d{4,9}/[-._;()/:a-z0-9]+)",
    re.IGNORECASE,
)
DOI_PREFIX = re.compile(r"^10\.\d{4,9}/")
ARXIV_PATTERN = re.compile(r"arxiv[:\s]*(\d{4}\.\d{4,5}(?:v\d+)?)", re.IGNORECASE)
URL_PATTERN = re.compile(r"https?://[^\s)\].,;]+", re.IGNORECASE)
QUOTED_TITLE = re.compile(r"[\"\u201c\u201d]([^\"\u201c\u201d]+)[\"\u201c\u201d]|['\u2018\u2019]([^'\u2018\u2019]+)['\u2018\u2019]")
TRAILING_PUNCT = re.compile(r"[.,;)\]]+$")

VENUE_PATTERNS = [
    re.compile(r"arxiv\s+preprint\s+arxiv:([^\s,]+)", re.IGNORECASE),
    re.compile(
        r"(?:In|in|Proceedings of|Proc\.)\s+([A-Z][^,.\d]+(?:Conference|Symposium|Workshop|Meeting)[^,]*)",
        re.IGNORECASE,
    ),
    re.compile(r"(?:journal of|trans\.|transactions on|letters|review)\s+([^,.\d]+)", re.IGNORECASE),
    re.compile(r",\s*([A-Z][A-Za-z\s]+(?:Conference|Journal|Symposium|Workshop|Transactions|Letters|Review)[^,]*)"),
    re.compile(r"\.\s+([A-Z][A-Za-z\s&]+(?:Med|Pract|Health|Sci|Res|Int|J\b)[^.]*)\."),
]

GENERIC_VENUE_PATTERNS = [
    re.compile(
        r"([A-Z][A-Za-z\s]+(?:Journal|Conference|Symposium|Workshop|Proceedings|Transactions|Letters|Review|Magazine)[^,.]*)"
    ),
    re.compile(r"([A-Z][A-Za-z\s&]+(?:Med|Pract|Health|Sci|Res|Int|J\b)[^.]*)"),
]

_NOT_A_TITLE = re.compile(r"^(?:\d|Accessed\s|https?:|arXiv|In\s+|Proceedings)", re.IGNORECASE)
_AUTHOR_LIKE = re.compile(r"^[A-Z][a-z]+,\s*[A-Z][A-Z]?\.")
_CAPITALIZED_SEGMENT = re.compile(r"[A-Z][^.!?]*(?::|[.!?])")


def normalize_bibliography_text(text: str) -> str:
    """Join hyphenated line breaks and flatten whitespace and typography."""
    text = re.sub(r"([a-z])-\s*\n\s*([a-z])", r"\1\2", text, flags=re.IGNORECASE)
    text = re.sub(r"[\u2000-\u200b\u2028\u2029\u00a0]", " ", text)
    text = re.sub(r"[\u2013\u2014]", "-", text)
    text = re.sub(r"[\u201c\u201d]", '"', text)
    text = re.sub(r"[\u2018\u2019]", "'", text)
    return re.sub(r"\s+", " ", text).strip()


def normalize_doi(doi: str) -> str:
    return re.sub(r"^https?://(?:dx\.)?doi\.org/", "", doi.strip().lower())


def doi_match(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return normalize_doi(a) == normalize_doi(b)


def extract_doi(text: str) -> Optional[str]:
    """Last loose DOI match in the text, else the first prefixed one."""
    matches = list(DOI_PATTERN_LOOSE.finditer(text))
    if matches:
        candidate = TRAILING_PUNCT.sub("", matches[-1].group(1))
        if DOI_PREFIX.match(candidate):
            return candidate

    match = DOI_PATTERN.search(text)
    if match:
        return TRAILING_PUNCT.sub("", match.group(1))
    return None


def extract_arxiv_id(text: str) -> Optional[str]:
    match = ARXIV_PATTERN.search(text)
    return match.group(1) if match else None


def extract_urls(text: str, arxiv_id: Optional[str] = None) -> list[str]:
    urls: list[str] = []
    for match in URL_PATTERN.finditer(text):
        url = TRAILING_PUNCT.sub("", match.group(0))
        if url not in urls:
            urls.append(url)
    if arxiv_id and not any("arxiv" in u.lower() for u in urls):
        urls.append(f"https://arxiv.org/abs/{arxiv_id}")
    return urls


def extract_year(text: str) -> str:
    """Last plausible year; earlier four-digit numbers are often volumes or pages."""
    years = [m.group(0).rstrip("abcdefghijklmnopqrstuvwxyz") for m in YEAR_PATTERN.finditer(text)]
    years = [y for y in years if 1900 <= int(y) <= 2099]
    return years[-1] if years else ""


def extract_title(text: str) -> str:
    quoted = QUOTED_TITLE.search(text)
    if quoted:
        title = (quoted.group(1) or quoted.group(2) or "").strip()
        if len(title) > 5:
            return title

    sentences = re.split(r"\.\s+", text)
    if len(sentences) >= 2:
        candidate = sentences[1]
        if (
            10 < len(candidate) < 300
            and candidate[0].isupper()
            and not _NOT_A_TITLE.match(candidate)
        ):
            return candidate.strip()

    segment = _CAPITALIZED_SEGMENT.search(text)
    if segment:
        candidate = segment.group(0)
        if (
            not _AUTHOR_LIKE.match(candidate)
            and not re.match(r"^(?:In\s+|Proceedings|arXiv)", candidate, re.IGNORECASE)
            and 10 < len(candidate) < 300
        ):
            return re.sub(r"[.!?:]$", "", candidate).strip()

    return ""


def _accept_venue(candidate: str) -> Optional[str]:
    venue = TRAILING_PUNCT.sub("", candidate.strip()).strip()
    if 2 < len(venue) < 200:
        return venue
    return None


def extract_venue(text: str, arxiv_id: Optional[str] = None) -> str:
    if arxiv_id or re.search(r"arxiv\s+preprint", text, re.IGNORECASE):
        return "arXiv"

    for pattern in VENUE_PATTERNS + GENERIC_VENUE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            venue = _accept_venue(match.group(1))
            if venue:
                return venue
    return ""


def extract_authors(text: str, title: str, year: str) -> list[str]:
    author_text = text
    if title and title in text:
        author_text = text[: text.index(title)]
    elif year:
        year_index = text.find(year)
        if year_index > 0:
            author_text = text[:year_index]

    first_quote = text.find('"')
    if 0 < first_quote < len(text) / 2:
        before_quote = text[:first_quote]
        if re.search(r"[,\s]and\s", before_quote, re.IGNORECASE) or "," in before_quote:
            author_text = before_quote

    author_text = QUOTED_TITLE.sub("", author_text, count=1)
    author_text = author_text.replace('"', "")
    author_text = re.sub(r"[\s,;]+$", "", author_text)
    author_text = re.sub(r"\.\s*$", "", author_text)
    author_text = re.sub(r"^\d+\s*", "", author_text).strip()

    return parse_authors(author_text)[:MAX_AUTHORS]


def parse_reference_text(
    text: str,
    citation_number: Optional[int],
    page_number: Optional[int],
    relative_index: int,
) -> ExtractedReference:
    """Turn one isolated bibliography entry into a structured reference."""
    clean = re.sub(r"\s+", " ", text).strip()

    arxiv_id = extract_arxiv_id(clean)
    year = extract_year(clean)
    title = extract_title(clean)

    return ExtractedReference(
        id=str(uuid.uuid4()),
        raw_text=clean,
        title=title,
        authors=extract_authors(clean, title, year),
        year=year,
        venue=extract_venue(clean, arxiv_id),
        doi=extract_doi(clean),
        urls=extract_urls(clean, arxiv_id),
        page_number=page_number,
        citation_number=citation_number,
        relative_index=relative_index,
    )
