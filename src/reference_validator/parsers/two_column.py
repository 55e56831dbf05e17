"""Two-column glued numbering, e.g. "1J. Smith ... 2K. Doe ...".

Typeset two-column bibliographies often lose the space between the
citation number and the first author. Any number in 1..100 directly
before a letter is a candidate; candidates are accepted only when they
continue the sequence with a gap of at most two missed numbers. OCR drops
digits often enough that the accepted entries are renumbered 1..N.
"""

import logging
import re

from ..models import ExtractedReference
from .base import BaseStrategy

logger = logging.getLogger(__name__)

CANDIDATE_PATTERN = re.compile(r"(?:^|\s)(\d+)\s*(?=[A-Za-z])")
LEADING_NUMBER = re.compile(r"^\d+\s*")
MAX_NUMBER = 100
MAX_GAP = 3
MIN_ACCEPTED = 3


class TwoColumnStrategy(BaseStrategy):
    name = "two_column"

    def _candidates(self, text: str) -> list[tuple[int, int]]:
        candidates = []
        for match in CANDIDATE_PATTERN.finditer(text):
            number = int(match.group(1))
            if not 1 <= number <= MAX_NUMBER:
                continue
            digits_start, digits_end = match.span(1)
            before = text[digits_start - 1] if digits_start > 0 else " "
            after = text[digits_end] if digits_end < len(text) else " "
            if before.isdigit() or after.isdigit():
                continue
            candidates.append((match.start(), number))
        return sorted(candidates)

    def _accept_sequence(self, candidates: list[tuple[int, int]]) -> list[tuple[int, int]]:
        accepted = []
        last = 0
        for index, number in candidates:
            if last + 1 <= number <= last + MAX_GAP:
                accepted.append((index, number))
                last = number
            else:
                logger.debug("Two-column: skipped %d (expected %d-%d)", number, last + 1, last + MAX_GAP)
        return accepted

    def extract_normalized(self, text: str, start_page: int) -> list[ExtractedReference]:
        accepted = self._accept_sequence(self._candidates(text))
        if len(accepted) < MIN_ACCEPTED:
            return []

        logger.debug("Two-column: accepted numbers %s", [n for _, n in accepted])
        results = self.slice_entries(
            text,
            [(index, None) for index, _ in accepted],
            start_page,
            LEADING_NUMBER,
        )
        for i, ref in enumerate(results):
            ref.citation_number = i + 1
        return results
