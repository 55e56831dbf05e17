"""CrossRef works API connector.

Looks a reference up by DOI when it has one, otherwise runs a
bibliographic query on title plus first-author surname and keeps the
best-matching title among the top results.
"""

import logging
import re
from typing import Optional

import httpx

from ..models import Reference, RetrievedReferenceData, SourceName
from .base import BaseConnector, first_author_surname, get_json

logger = logging.getLogger(__name__)

CROSSREF_API_URL = "https://api.crossref.org/works"
ROWS = 5


def _year_from_item(item: dict) -> str:
    for key in ("published-print", "published-online", "issued", "published"):
        parts = (item.get(key) or {}).get("date-parts") or [[None]]
        if parts and parts[0] and parts[0][0]:
            return str(parts[0][0])
    return ""


def _extract_canonical(item: dict) -> RetrievedReferenceData:
    """Convert a CrossRef work item to the normalized record."""
    authors = []
    for author in item.get("author", []):
        name_parts = [author.get("given", ""), author.get("family", "")]
        name = " ".join(p for p in name_parts if p)
        if name:
            authors.append(name)

    titles = item.get("title") or []
    venues = item.get("container-title") or []
    doi = item.get("DOI")
    return RetrievedReferenceData(
        title=re.sub(r"<[^>]+>", "", titles[0]).strip() if titles else "",
        authors=authors,
        year=_year_from_item(item),
        venue=venues[0] if venues else "",
        doi=doi,
        url=f"https://doi.org/{doi}" if doi else item.get("URL"),
    )


class CrossRefConnector(BaseConnector):
    name = SourceName.CROSSREF

    def __init__(self, client: httpx.AsyncClient, mailto: Optional[str] = None):
        super().__init__(client)
        self.mailto = mailto

    def _params(self) -> dict:
        return {"mailto": self.mailto} if self.mailto else {}

    def _build_query_params(self, ref: Reference) -> dict:
        query = ref.title
        surname = first_author_surname(ref)
        if surname:
            query = f"{query} {surname}"
        params: dict[str, str | int] = {"query.bibliographic": query, "rows": ROWS}
        params.update(self._params())
        return params

    async def lookup(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        if not reference.doi:
            return None
        data = await get_json(self.client, f"{CROSSREF_API_URL}/{reference.doi}", params=self._params())
        if not data or not data.get("message"):
            return None
        return _extract_canonical(data["message"])

    async def search(self, reference: Reference) -> list[RetrievedReferenceData]:
        data = await get_json(self.client, CROSSREF_API_URL, params=self._build_query_params(reference))
        items = (data or {}).get("message", {}).get("items", [])
        return [_extract_canonical(item) for item in items]
