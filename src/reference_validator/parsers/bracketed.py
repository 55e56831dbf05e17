"""Bracketed numbered references: [1] Author, "Title", Venue, Year."""

import re

from ..models import ExtractedReference
from .base import BaseStrategy
from .fields import parse_reference_text

BRACKETED_PATTERN = re.compile(r"\[(\d+)\]\s*([^\[\n]+(?:\n(?!\s*\[\d+\])[^\[\n]+)*)")


class BracketedStrategy(BaseStrategy):
    name = "bracketed"

    def extract_normalized(self, text: str, start_page: int) -> list[ExtractedReference]:
        results = []
        for match in BRACKETED_PATTERN.finditer(text):
            entry = match.group(2).strip()
            if not entry:
                continue
            results.append(
                parse_reference_text(entry, int(match.group(1)), start_page, match.start())
            )
        return results
