"""arXiv export API connector.

The API answers in Atom; responses are fetched with httpx and handed to
feedparser. An unknown id yields an entry without a title rather than a
404, so such entries are treated as not found.
"""

import logging
import re
from typing import Optional

import feedparser

from ..matching import edit_similarity
from ..models import Reference, RetrievedReferenceData, SourceName
from ..parsers.fields import extract_arxiv_id
from .base import BaseConnector

logger = logging.getLogger(__name__)

ARXIV_API_URL = "https://export.arxiv.org/api/query"
MAX_RESULTS = 3
TITLE_THRESHOLD = 0.7


def _entry_to_record(entry) -> Optional[RetrievedReferenceData]:
    title = re.sub(r"\s+", " ", entry.get("title", "")).strip()
    if not title or title.lower() == "error":
        return None
    published = entry.get("published", "")
    return RetrievedReferenceData(
        title=title,
        authors=[a.get("name", "") for a in entry.get("authors", []) if a.get("name")],
        year=published[:4],
        venue="arXiv preprint",
        doi=entry.get("arxiv_doi"),
        url=entry.get("link") or entry.get("id"),
    )


class ArxivConnector(BaseConnector):
    name = SourceName.ARXIV

    async def _query(self, params: dict) -> list[RetrievedReferenceData]:
        response = await self.client.get(ARXIV_API_URL, params=params)
        response.raise_for_status()
        feed = feedparser.parse(response.content)
        records = []
        for entry in feed.entries:
            record = _entry_to_record(entry)
            if record:
                records.append(record)
        return records

    async def lookup(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        arxiv_id = extract_arxiv_id(reference.raw_text or "")
        if not arxiv_id:
            for url in reference.urls:
                match = re.search(r"arxiv\.org/abs/([^\s/?#]+)", url, re.IGNORECASE)
                if match:
                    arxiv_id = match.group(1)
                    break
        if not arxiv_id:
            return None
        records = await self._query({"id_list": arxiv_id})
        return records[0] if records else None

    async def search(self, reference: Reference) -> list[RetrievedReferenceData]:
        title = re.sub(r"[^\w\s]", " ", reference.title).strip()
        if not title:
            return []
        query = f'ti:"{" ".join(title.split())}"'
        return await self._query({"search_query": query, "max_results": MAX_RESULTS})

    def score_candidate(self, reference: Reference, candidate: RetrievedReferenceData) -> float:
        return edit_similarity(reference.title, candidate.title)

    def candidate_threshold(self) -> float:
        return TITLE_THRESHOLD
