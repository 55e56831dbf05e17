"""Connectors to external bibliographic databases."""

import httpx

from ..config import ValidationSettings
from .arxiv import ArxivConnector
from .base import BaseConnector, compute_match_score
from .crossref import CrossRefConnector
from .openalex import OpenAlexConnector
from .semantic_scholar import SemanticScholarConnector


def build_connectors(settings: ValidationSettings, client: httpx.AsyncClient) -> list[BaseConnector]:
    """Enabled connectors in their fixed order: CrossRef, Semantic Scholar, OpenAlex, arXiv."""
    connectors: list[BaseConnector] = []
    if settings.enable_crossref:
        connectors.append(CrossRefConnector(client, mailto=settings.mailto))
    if settings.enable_semantic_scholar:
        connectors.append(SemanticScholarConnector(client, api_key=settings.semantic_scholar_api_key))
    if settings.enable_openalex:
        connectors.append(OpenAlexConnector(client, mailto=settings.mailto))
    if settings.enable_arxiv:
        connectors.append(ArxivConnector(client))
    return connectors


__all__ = [
    "ArxivConnector",
    "BaseConnector",
    "CrossRefConnector",
    "OpenAlexConnector",
    "SemanticScholarConnector",
    "build_connectors",
    "compute_match_score",
]
