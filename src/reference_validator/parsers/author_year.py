"""Author-year references separated by blank lines.

This is the one strategy that needs paragraph structure, so it splits
the raw text before normalizing each entry.
"""

import re

from ..models import ExtractedReference
from .base import BaseStrategy
from .fields import normalize_bibliography_text, parse_reference_text

MIN_LENGTH = 50


class AuthorYearStrategy(BaseStrategy):
    name = "author_year"

    def extract(self, bibliography_text: str, start_page: int) -> list[ExtractedReference]:
        normalized = normalize_bibliography_text(bibliography_text)
        results = []
        cursor = 0
        for i, block in enumerate(re.split(r"\n\s*\n+", bibliography_text)):
            entry = normalize_bibliography_text(block)
            if len(entry) <= MIN_LENGTH:
                continue
            index = normalized.find(entry, cursor)
            if index < 0:
                index = cursor
            else:
                cursor = index + len(entry)
            ref = parse_reference_text(entry, i + 1, start_page, index)
            if self.has_content(ref):
                results.append(ref)
        return results

    def extract_normalized(self, text: str, start_page: int) -> list[ExtractedReference]:
        # Normalized text has no blank lines left, so it is a single entry at most
        return self.extract(text, start_page)
