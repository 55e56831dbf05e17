"""Common contract for bibliographic database connectors.

A connector never raises out of validate(): network, HTTP and decoding
errors become entries in ValidationSource.errors with found=False, so
connectors can be gathered concurrently without one failure cancelling
the others.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..matching import author_list_overlap, title_similarity
from ..models import (
    Reference,
    RetrievedReferenceData,
    SourceName,
    ValidationSource,
    ValidationStep,
)

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 0.5
AUTHOR_WEIGHT = 0.3
YEAR_WEIGHT = 0.2
CANDIDATE_THRESHOLD = 0.6


def parse_year(value) -> Optional[int]:
    match = re.search(r"\d{4}", str(value or ""))
    return int(match.group(0)) if match else None


def year_closeness(a, b) -> Optional[float]:
    """1.0 for the same year, 0.9 one apart, 0.7 two apart, else 0.3."""
    ya, yb = parse_year(a), parse_year(b)
    if ya is None or yb is None:
        return None
    diff = abs(ya - yb)
    if diff == 0:
        return 1.0
    if diff == 1:
        return 0.9
    if diff == 2:
        return 0.7
    return 0.3


def compute_match_score(reference: Reference, data: RetrievedReferenceData) -> float:
    """Weighted title/author/year agreement over the fields both sides have."""
    total = 0.0
    weights = 0.0
    if reference.title and data.title:
        total += TITLE_WEIGHT * title_similarity(reference.title, data.title)
        weights += TITLE_WEIGHT
    if reference.authors and data.authors:
        total += AUTHOR_WEIGHT * author_list_overlap(reference.authors, data.authors)
        weights += AUTHOR_WEIGHT
    closeness = year_closeness(reference.year, data.year)
    if closeness is not None:
        total += YEAR_WEIGHT * closeness
        weights += YEAR_WEIGHT
    if weights == 0:
        return 0.0
    return round(total / weights, 4)


def first_author_surname(reference: Reference) -> str:
    if not reference.authors:
        return ""
    name = reference.authors[0].strip()
    if "," in name:
        return name.split(",")[0].strip()
    parts = [p for p in name.split() if len(p.replace(".", "")) > 2]
    return parts[-1] if parts else name


class BaseConnector(ABC):
    """Adapter from one external database to the ValidationSource contract."""

    name: SourceName

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @abstractmethod
    async def lookup(self, reference: Reference) -> Optional[RetrievedReferenceData]:
        """Direct lookup by DOI or native identifier; None when not found."""
        ...

    @abstractmethod
    async def search(self, reference: Reference) -> list[RetrievedReferenceData]:
        """Search by title and return candidate records."""
        ...

    def score_candidate(self, reference: Reference, candidate: RetrievedReferenceData) -> float:
        return title_similarity(reference.title, candidate.title)

    def candidate_threshold(self) -> float:
        return CANDIDATE_THRESHOLD

    def pick_best(
        self, reference: Reference, candidates: list[RetrievedReferenceData]
    ) -> Optional[RetrievedReferenceData]:
        best = None
        best_score = self.candidate_threshold()
        for candidate in candidates:
            score = self.score_candidate(reference, candidate)
            if score > best_score:
                best, best_score = candidate, score
        return best

    async def validate(
        self, reference: Reference, step: ValidationStep = ValidationStep.API
    ) -> ValidationSource:
        errors: list[str] = []
        record: Optional[RetrievedReferenceData] = None

        try:
            record = await self.lookup(reference)
        except Exception as e:
            logger.warning("%s lookup failed for '%s': %s", self.name.value, reference.title[:50], e)
            errors.append(f"Lookup failed: {e}")

        if record is None and reference.title:
            try:
                record = self.pick_best(reference, await self.search(reference))
            except Exception as e:
                logger.warning("%s search failed for '%s': %s", self.name.value, reference.title[:50], e)
                errors.append(f"Search failed: {e}")

        if record is None:
            logger.debug("%s: no match for '%s'", self.name.value, reference.title[:50])
            return ValidationSource(name=self.name, found=False, errors=errors, step=step)

        score = compute_match_score(reference, record)
        logger.debug("%s: match %.2f for '%s'", self.name.value, score, reference.title[:50])
        return ValidationSource(
            name=self.name,
            found=True,
            match_score=score,
            retrieved_data=record,
            errors=errors,
            step=step,
        )


async def get_json(client: httpx.AsyncClient, url: str, **kwargs) -> Optional[dict]:
    """GET a JSON document; None on 404, raise on any other HTTP error."""
    response = await client.get(url, **kwargs)
    if response.status_code == 404:
        return None
    if response.status_code == 429:
        raise httpx.HTTPStatusError("Rate limited (429)", request=response.request, response=response)
    response.raise_for_status()
    return response.json()
