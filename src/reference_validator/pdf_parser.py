"""Per-page document text from PDFs and plain-text files.

Uses pdfplumber as primary extractor with PyMuPDF (fitz) as fallback.
Multi-column layouts are detected and extracted column by column so that
neighbouring columns are never interleaved within a line. Page texts are
kept separate so that offsets in the joined text can be mapped back to
page numbers.
"""

import logging
from pathlib import Path

from .models import DocumentText

logger = logging.getLogger(__name__)

_MIN_SPACE_RATIO = 0.06

_TYPOGRAPHY = {
    "“": '"',  # left double quotation mark
    "”": '"',  # right double quotation mark
    "‘": "'",  # left single quotation mark
    "’": "'",  # right single quotation mark
    "–": "-",  # en dash
    "—": "-",  # em dash
    " ": " ",  # non-breaking space
    "ﬁ": "fi",
    "ﬂ": "fl",
    "ﬀ": "ff",
    "ﬃ": "ffi",
    "ﬄ": "ffl",
}


def find_column_gap(word_centers: list[float], page_width: float) -> float | None:
    """x-coordinate of the gap between two text columns, or None if single-column.

    Word centers are binned into 10pt strips; a strip in the middle 40% of
    the page holding under a quarter of the average density is the gap.
    """
    if not word_centers or page_width <= 0:
        return None

    bin_width = 10
    n_bins = int(page_width / bin_width) + 1
    bins = [0] * n_bins
    for cx in word_centers:
        bins[min(int(cx / bin_width), n_bins - 1)] += 1

    lo, hi = int(n_bins * 0.30), int(n_bins * 0.70)
    if lo >= hi:
        return None

    middle = bins[lo:hi]
    sparsest = min(middle)
    if sparsest > (sum(bins) / n_bins) * 0.25:
        return None
    return (lo + middle.index(sparsest) + 0.5) * bin_width


# ---------------------------------------------------------------------------
# pdfplumber extraction
# ---------------------------------------------------------------------------


def _page_text_pdfplumber(page) -> str:
    words = page.extract_words()
    if not words:
        return page.extract_text() or ""

    centers = [(float(w["x0"]) + float(w["x1"])) / 2 for w in words]
    gap_x = find_column_gap(centers, page.width)
    if gap_x is None:
        return page.extract_text() or ""

    left = page.crop((0, 0, gap_x, page.height)).extract_text() or ""
    right = page.crop((gap_x, 0, page.width, page.height)).extract_text() or ""
    return left + "\n" + right


def pages_pdfplumber(pdf_path: Path) -> list[str]:
    import pdfplumber

    with pdfplumber.open(pdf_path) as pdf:
        return [_page_text_pdfplumber(page) for page in pdf.pages]


# ---------------------------------------------------------------------------
# PyMuPDF (fitz) extraction
# ---------------------------------------------------------------------------


def _page_text_pymupdf(page) -> str:
    import fitz

    # (x0, y0, x1, y1, word, block, line, word_no)
    words = page.get_text("words")
    if not words:
        return page.get_text()

    rect = page.rect
    gap_x = find_column_gap([(w[0] + w[2]) / 2 for w in words], rect.width)
    if gap_x is None:
        return page.get_text()

    left = page.get_text(clip=fitz.Rect(0, 0, gap_x, rect.height)) or ""
    right = page.get_text(clip=fitz.Rect(gap_x, 0, rect.width, rect.height)) or ""
    return left + "\n" + right


def pages_pymupdf(pdf_path: Path) -> list[str]:
    import fitz

    with fitz.open(pdf_path) as doc:
        return [_page_text_pymupdf(page) for page in doc]


# ---------------------------------------------------------------------------
# Common loading pipeline
# ---------------------------------------------------------------------------


def _space_ratio(text: str) -> float:
    if not text:
        return 0.0
    return text.count(" ") / len(text)


def normalize_typography(text: str) -> str:
    """Replace curly quotes, dashes, non-breaking spaces and ligatures with ASCII."""
    for old, new in _TYPOGRAPHY.items():
        text = text.replace(old, new)
    return text


def extract_pages(pdf_path: Path) -> list[str]:
    """Page texts of a PDF, trying pdfplumber first then PyMuPDF.

    Falls back to PyMuPDF if pdfplumber returns empty text or output with
    very few spaces (broken word separation).
    """
    try:
        pages = pages_pdfplumber(pdf_path)
        joined = "".join(pages)
        if not joined.strip():
            logger.warning("pdfplumber returned empty text, trying PyMuPDF")
        elif _space_ratio(joined) < _MIN_SPACE_RATIO:
            logger.warning(
                "pdfplumber text has low space ratio (%.1f%%), "
                "likely missing word separators; trying PyMuPDF",
                _space_ratio(joined) * 100,
            )
        else:
            return pages
    except Exception as e:
        logger.warning("pdfplumber failed: %s, trying PyMuPDF", e)

    try:
        return pages_pymupdf(pdf_path)
    except Exception as e:
        raise RuntimeError(f"Failed to extract text from {pdf_path}: {e}") from e


def document_from_text(text: str) -> DocumentText:
    """Plain text; form feeds separate pages when present."""
    pages = text.split("\f") if "\f" in text else [text]
    return DocumentText.from_pages([normalize_typography(p) for p in pages])


def load_document(path: str | Path) -> DocumentText:
    """Load a .pdf or text file into per-page document text."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")

    if path.suffix.lower() == ".pdf":
        document = DocumentText.from_pages([normalize_typography(p) for p in extract_pages(path)])
    else:
        document = document_from_text(path.read_text(encoding="utf-8", errors="replace"))

    logger.info(
        "Loaded %s: %d pages, %d chars",
        path.name,
        len(document.pages),
        len(document.full_text),
    )
    return document
