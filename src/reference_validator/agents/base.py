"""Capabilities the staged pipeline depends on.

Each is injected; the pipeline only relies on these call shapes, so tests
and alternative backends can substitute any object that provides them.
"""

from typing import Optional, Protocol

from ..models import (
    AttemptedQuery,
    QueryVariant,
    Reference,
    RetrievedReferenceData,
    ValidationSource,
)


class QueryVariantGenerator(Protocol):
    async def generate(self, reference: Reference) -> list[QueryVariant]:
        """Return 3-5 rewritten queries, or the original query on failure."""
        ...


class WebSearcher(Protocol):
    async def search(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        """Return the record found on the web, or None."""
        ...


class NotFoundExplainer(Protocol):
    async def explain(
        self,
        reference: Reference,
        attempted_queries: list[AttemptedQuery],
        sources: list[ValidationSource],
    ) -> str:
        ...


def original_query(reference: Reference, description: str = "Original query") -> QueryVariant:
    return QueryVariant(
        title=reference.title,
        authors=list(reference.authors),
        year=reference.year or None,
        description=description,
    )


def apply_variant(reference: Reference, variant: QueryVariant) -> Reference:
    """Copy of `reference` with the variant's non-empty fields substituted."""
    update: dict = {}
    if variant.title:
        update["title"] = variant.title
    if variant.authors:
        update["authors"] = list(variant.authors)
    if variant.year:
        update["year"] = variant.year
    return reference.model_copy(update=update)
