"""Base class for bibliography splitting strategies."""

import re
from abc import ABC, abstractmethod
from typing import Optional

from ..models import ExtractedReference
from .fields import normalize_bibliography_text, parse_reference_text

MIN_ENTRY_LENGTH = 20


class BaseStrategy(ABC):
    """One way of cutting a bibliography blob into individual entries."""

    name: str = "unknown"

    def extract(self, bibliography_text: str, start_page: int) -> list[ExtractedReference]:
        """Split and parse a raw bibliography.

        The default implementation works on the normalized single-line text.
        Override when a strategy needs the original line structure.
        """
        return self.extract_normalized(normalize_bibliography_text(bibliography_text), start_page)

    @abstractmethod
    def extract_normalized(self, text: str, start_page: int) -> list[ExtractedReference]:
        """Split normalized text; relative_index values point into `text`."""
        ...

    @staticmethod
    def has_content(ref: ExtractedReference) -> bool:
        return bool(ref.title or ref.authors)

    def slice_entries(
        self,
        text: str,
        boundaries: list[tuple[int, Optional[int]]],
        start_page: int,
        marker: re.Pattern,
    ) -> list[ExtractedReference]:
        """Cut `text` at each (offset, number) boundary and parse the pieces.

        `marker` is stripped from the start of each piece. Pieces shorter than
        MIN_ENTRY_LENGTH or without title and authors are dropped.
        """
        results = []
        for i, (start, number) in enumerate(boundaries):
            end = boundaries[i + 1][0] if i + 1 < len(boundaries) else len(text)
            entry = marker.sub("", text[start:end].strip(), count=1).strip()
            if len(entry) < MIN_ENTRY_LENGTH:
                continue
            ref = parse_reference_text(entry, number, start_page, start)
            if self.has_content(ref):
                results.append(ref)
        return results
