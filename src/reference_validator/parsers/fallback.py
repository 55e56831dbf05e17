"""Permissive last-resort splitting for bibliographies no other strategy recognised."""

import re

from ..models import ExtractedReference
from .base import BaseStrategy

BOUNDARY_PATTERN = re.compile(r"(?:^|\s)(\d+)[.)]\s+(?=[A-Z])|(?:^|\s)\[(\d+)\]\s+")
BOUNDARY_MARKER = re.compile(r"^(?:\d+[.)]|\[\d+\])\s*")
SEQUENTIAL_PATTERN = re.compile(r"\s(\d+)(?=\s*[A-Z])")
LEADING_NUMBER = re.compile(r"^\d+\s*")
MIN_BOUNDARIES = 3


class FallbackStrategy(BaseStrategy):
    name = "fallback"

    def extract_normalized(self, text: str, start_page: int) -> list[ExtractedReference]:
        boundaries = []
        for match in BOUNDARY_PATTERN.finditer(text):
            number = int(match.group(1) or match.group(2))
            if 1 <= number <= 1000:
                boundaries.append((match.start(), number))
        if len(boundaries) >= MIN_BOUNDARIES:
            return self.slice_entries(text, sorted(boundaries), start_page, BOUNDARY_MARKER)

        sequential = []
        for match in SEQUENTIAL_PATTERN.finditer(text):
            number = int(match.group(1))
            if 1 <= number <= 100:
                sequential.append((match.start() + 1, number))
        if len(sequential) >= MIN_BOUNDARIES:
            return self.slice_entries(text, sequential, start_page, LEADING_NUMBER)
        return []
