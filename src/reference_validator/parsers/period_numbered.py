"""Period-numbered references: "1. Wong A, et al. Title. Journal. 2021"."""

import re

from ..models import ExtractedReference
from .base import MIN_ENTRY_LENGTH, BaseStrategy
from .fields import parse_reference_text

PERIOD_PATTERN = re.compile(r"(?:^|\s)(\d+)\.\s+([A-Z][\s\S]*?)(?=\s+\d+\.\s+[A-Z]|$)")
MAX_NUMBER = 1000


class PeriodNumberedStrategy(BaseStrategy):
    name = "period_numbered"

    def extract_normalized(self, text: str, start_page: int) -> list[ExtractedReference]:
        results = []
        for match in PERIOD_PATTERN.finditer(text):
            number = int(match.group(1))
            entry = match.group(2).strip()
            if len(entry) < MIN_ENTRY_LENGTH or not 1 <= number <= MAX_NUMBER:
                continue
            ref = parse_reference_text(entry, number, start_page, match.start())
            if self.has_content(ref):
                results.append(ref)
        return results
