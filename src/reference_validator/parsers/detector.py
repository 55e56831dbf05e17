"""Run the splitting strategies in order and keep the first convincing result."""

import logging

from ..models import ExtractedReference
from .author_year import AuthorYearStrategy
from .base import BaseStrategy
from .bracketed import BracketedStrategy
from .fallback import FallbackStrategy
from .period_numbered import PeriodNumberedStrategy
from .two_column import TwoColumnStrategy

logger = logging.getLogger(__name__)

# Fewer entries than this is treated as a false detection of the style
MIN_ENTRIES = 3

STRATEGIES: list[BaseStrategy] = [
    BracketedStrategy(),
    TwoColumnStrategy(),
    PeriodNumberedStrategy(),
    AuthorYearStrategy(),
    FallbackStrategy(),
]


def _renumber(references: list[ExtractedReference]) -> list[ExtractedReference]:
    for i, ref in enumerate(references):
        ref.citation_number = i + 1
    return references


def extract_references(
    bibliography_text: str,
    start_page: int = 1,
    strategies: list[BaseStrategy] | None = None,
) -> list[ExtractedReference]:
    """Split a located bibliography into parsed references.

    The first strategy yielding at least MIN_ENTRIES wins. Otherwise the
    last strategy's output is used, and if that is empty the first
    non-empty low-count result. Citation numbers are always 1..N.
    """
    strategies = strategies if strategies is not None else STRATEGIES
    if not bibliography_text or not bibliography_text.strip():
        return []

    attempts: list[tuple[str, list[ExtractedReference]]] = []
    for strategy in strategies:
        references = strategy.extract(bibliography_text, start_page)
        logger.debug("Strategy %s found %d entries", strategy.name, len(references))
        if len(references) >= MIN_ENTRIES:
            logger.info("Extracted %d references with %s strategy", len(references), strategy.name)
            return _renumber(references)
        attempts.append((strategy.name, references))

    name, references = attempts[-1] if attempts else ("none", [])
    if not references:
        for name, candidate in attempts:
            if candidate:
                references = candidate
                break

    if references:
        logger.info("Extracted %d references with %s strategy (below threshold)", len(references), name)
    else:
        logger.warning("No references found in %d chars of bibliography text", len(bibliography_text))
    return _renumber(references)
