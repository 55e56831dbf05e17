"""Semantic Scholar Graph API connector.

Direct lookups use the DOI: or ARXIV: paper identifiers; otherwise the
paper search endpoint is queried by title. An API key, when configured,
is sent as x-api-key and raises the rate limit.
"""

import logging
from typing import Optional

import httpx

from ..models import Reference, RetrievedReferenceData, SourceName
from ..parsers.fields import extract_arxiv_id
from .base import BaseConnector, get_json

logger = logging.getLogger(__name__)

S2_API_URL = "https://api.semanticscholar.org/graph/v1/paper"
FIELDS = "title,authors,year,venue,externalIds,url"
LIMIT = 5


def _extract_canonical(paper: dict) -> RetrievedReferenceData:
    """Convert a Semantic Scholar paper to the normalized record."""
    authors = [a.get("name", "") for a in paper.get("authors") or [] if a.get("name")]
    external_ids = paper.get("externalIds") or {}
    return RetrievedReferenceData(
        title=paper.get("title") or "",
        authors=authors,
        year=paper.get("year"),
        venue=paper.get("venue") or "",
        doi=external_ids.get("DOI"),
        url=paper.get("url"),
    )


class SemanticScholarConnector(BaseConnector):
    name = SourceName.SEMANTIC_SCHOLAR

    def __init__(self, client: httpx.AsyncClient, api_key: Optional[str] = None):
        super().__init__(client)
        self.api_key = api_key

    def _headers(self) -> dict:
        return {"x-api-key": self.api_key} if self.api_key else {}

    def _arxiv_id(self, reference: Reference) -> Optional[str]:
        for text in [reference.raw_text, *reference.urls]:
            found = extract_arxiv_id(text) if text else None
            if found:
                return found
        for url in reference.urls:
            if "arxiv.org/abs/" in url:
                return url.rsplit("/", 1)[-1]
        return None

    async def lookup(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        paper_ids = []
        if reference.doi:
            paper_ids.append(f"DOI:{reference.doi}")
        arxiv_id = self._arxiv_id(reference)
        if arxiv_id:
            paper_ids.append(f"ARXIV:{arxiv_id}")

        for paper_id in paper_ids:
            paper = await get_json(
                self.client,
                f"{S2_API_URL}/{paper_id}",
                params={"fields": FIELDS},
                headers=self._headers(),
            )
            if paper and paper.get("title"):
                return _extract_canonical(paper)
        return None

    async def search(self, reference: Reference) -> list[RetrievedReferenceData]:
        data = await get_json(
            self.client,
            f"{S2_API_URL}/search",
            params={"query": reference.title, "limit": LIMIT, "fields": FIELDS},
            headers=self._headers(),
        )
        return [_extract_canonical(p) for p in (data or {}).get("data") or []]
