"""OpenAlex works API connector."""

import logging
from typing import Optional

import httpx

from ..models import Reference, RetrievedReferenceData, SourceName
from .base import BaseConnector, get_json

logger = logging.getLogger(__name__)

OPENALEX_API_URL = "https://api.openalex.org/works"
PER_PAGE = 5


def _extract_canonical(work: dict) -> RetrievedReferenceData:
    authors = [
        (a.get("author") or {}).get("display_name", "")
        for a in work.get("authorships") or []
    ]
    source = ((work.get("primary_location") or {}).get("source") or {})
    doi = work.get("doi")
    if doi:
        doi = doi.replace("https://doi.org/", "")
    return RetrievedReferenceData(
        title=work.get("display_name") or work.get("title") or "",
        authors=[a for a in authors if a],
        year=work.get("publication_year"),
        venue=source.get("display_name") or "",
        doi=doi,
        url=work.get("doi") or work.get("id"),
    )


class OpenAlexConnector(BaseConnector):
    name = SourceName.OPENALEX

    def __init__(self, client: httpx.AsyncClient, mailto: Optional[str] = None):
        super().__init__(client)
        self.mailto = mailto

    def _params(self) -> dict:
        return {"mailto": self.mailto} if self.mailto else {}

    async def lookup(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        if not reference.doi:
            return None
        work = await get_json(
            self.client,
            f"{OPENALEX_API_URL}/https://doi.org/{reference.doi}",
            params=self._params(),
        )
        return _extract_canonical(work) if work else None

    async def search(self, reference: Reference) -> list[RetrievedReferenceData]:
        params = {"search": reference.title, "per-page": PER_PAGE}
        params.update(self._params())
        data = await get_json(self.client, OPENALEX_API_URL, params=params)
        return [_extract_canonical(w) for w in (data or {}).get("results") or []]
