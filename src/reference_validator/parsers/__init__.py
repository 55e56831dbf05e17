"""Rule-based splitting of bibliography text into structured references."""

from .author_year import AuthorYearStrategy
from .bracketed import BracketedStrategy
from .fallback import FallbackStrategy
from .period_numbered import PeriodNumberedStrategy
from .two_column import TwoColumnStrategy
from .detector import extract_references, MIN_ENTRIES, STRATEGIES
from .fields import normalize_bibliography_text, parse_reference_text

__all__ = [
    "AuthorYearStrategy",
    "BracketedStrategy",
    "FallbackStrategy",
    "PeriodNumberedStrategy",
    "TwoColumnStrategy",
    "extract_references",
    "normalize_bibliography_text",
    "parse_reference_text",
    "MIN_ENTRIES",
    "STRATEGIES",
]
