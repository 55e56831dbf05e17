"""Tests for the bibliographic database connectors, with HTTP faked by httpx.MockTransport."""

import asyncio

import httpx
import pytest

from reference_validator.config import ValidationSettings
from reference_validator.models import Reference, RetrievedReferenceData, SourceName, ValidationStep
from reference_validator.sources import (
    ArxivConnector,
    CrossRefConnector,
    OpenAlexConnector,
    SemanticScholarConnector,
    build_connectors,
    compute_match_score,
)
from reference_validator.sources.base import get_json, year_closeness

ARXIV_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>http://arxiv.org/abs/1706.03762v5</id>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All You
      Need</title>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
    <link href="http://arxiv.org/abs/1706.03762v5" rel="alternate" type="text/html"/>
  </entry>
</feed>
"""

EMPTY_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"></feed>
"""


def _make_ref(**kwargs) -> Reference:
    defaults = {
        "authors": ["Smith, J.", "Doe, A."],
        "title": "Machine learning in healthcare",
        "year": "2020",
        "raw_text": "Smith, J., & Doe, A. (2020). Machine learning in healthcare.",
    }
    defaults.update(kwargs)
    return Reference(**defaults)


def _validate(handler, make_connector, reference, step=ValidationStep.API):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await make_connector(client).validate(reference, step=step)

    return asyncio.run(go())


CROSSREF_ITEM = {
    "title": ["Machine learning in <i>healthcare</i>"],
    "author": [{"given": "John", "family": "Smith"}, {"given": "Alice", "family": "Doe"}],
    "published-print": {"date-parts": [[2020, 3]]},
    "container-title": ["Nature Medicine"],
    "DOI": "10.1038/s41591-020-0803-x",
}


class TestMatchScore:
    def test_exact(self):
        data = RetrievedReferenceData(
            title="Machine learning in healthcare", authors=["John Smith", "Alice Doe"], year="2020"
        )
        assert compute_match_score(_make_ref(), data) == 1.0

    def test_only_title_available(self):
        data = RetrievedReferenceData(title="Machine learning in healthcare")
        assert compute_match_score(_make_ref(authors=[], year=""), data) == 1.0

    def test_nothing_comparable(self):
        assert compute_match_score(Reference(), RetrievedReferenceData()) == 0.0

    @pytest.mark.parametrize(
        "a, b, expected",
        [("2020", "2020", 1.0), ("2020", "2021", 0.9), ("2020", "2018", 0.7), ("2020", "2010", 0.3)],
    )
    def test_year_closeness(self, a, b, expected):
        assert year_closeness(a, b) == expected

    def test_year_closeness_missing(self):
        assert year_closeness("", "2020") is None


class TestCrossRefConnector:
    def test_search_by_title(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"message": {"items": [CROSSREF_ITEM]}})

        source = _validate(handler, lambda c: CrossRefConnector(c, mailto="me@example.org"), _make_ref())
        assert source.name == SourceName.CROSSREF
        assert source.found
        assert source.match_score == 1.0
        assert source.retrieved_data.title == "Machine learning in healthcare"
        assert source.retrieved_data.year == "2020"
        assert source.retrieved_data.venue == "Nature Medicine"
        assert source.retrieved_data.url == "https://doi.org/10.1038/s41591-020-0803-x"
        assert source.step == ValidationStep.API

        [request] = seen
        assert request.url.params["query.bibliographic"] == "Machine learning in healthcare Smith"
        assert request.url.params["mailto"] == "me@example.org"

    def test_doi_lookup(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json={"message": CROSSREF_ITEM})

        ref = _make_ref(doi="10.1038/s41591-020-0803-x")
        source = _validate(handler, CrossRefConnector, ref)
        assert source.found
        assert paths == ["/works/10.1038/s41591-020-0803-x"]

    def test_doi_not_found_falls_back_to_search(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/works/"):
                return httpx.Response(404)
            return httpx.Response(200, json={"message": {"items": [CROSSREF_ITEM]}})

        source = _validate(handler, CrossRefConnector, _make_ref(doi="10.9999/missing"))
        assert source.found
        assert source.errors == []

    def test_poor_candidates_rejected(self):
        item = dict(CROSSREF_ITEM, title=["Quantum computing and cryptography"])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": {"items": [item]}})

        source = _validate(handler, CrossRefConnector, _make_ref())
        assert not source.found
        assert source.match_score == 0.0
        assert source.retrieved_data is None

    def test_server_error_recorded(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        source = _validate(handler, CrossRefConnector, _make_ref())
        assert not source.found
        assert len(source.errors) == 1
        assert source.errors[0].startswith("Search failed:")

    def test_rate_limit_recorded(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429)

        source = _validate(handler, CrossRefConnector, _make_ref(doi="10.1/x"))
        assert not source.found
        assert source.errors[0].startswith("Lookup failed:")
        assert source.errors[1].startswith("Search failed:")


class TestSemanticScholarConnector:
    PAPER = {
        "title": "Machine learning in healthcare",
        "authors": [{"name": "John Smith"}, {"name": "Alice Doe"}],
        "year": 2020,
        "venue": "Nature Medicine",
        "externalIds": {"DOI": "10.1038/s41591-020-0803-x"},
        "url": "https://www.semanticscholar.org/paper/abc",
    }

    def test_doi_lookup_with_api_key(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=self.PAPER)

        ref = _make_ref(doi="10.1038/s41591-020-0803-x")
        source = _validate(handler, lambda c: SemanticScholarConnector(c, api_key="secret"), ref)
        assert source.found
        assert source.retrieved_data.year == "2020"
        assert source.retrieved_data.doi == "10.1038/s41591-020-0803-x"
        assert seen[0].url.path == "/graph/v1/paper/DOI:10.1038/s41591-020-0803-x"
        assert seen[0].headers["x-api-key"] == "secret"

    def test_search(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/graph/v1/paper/search"
            assert request.url.params["query"] == "Machine learning in healthcare"
            return httpx.Response(200, json={"data": [self.PAPER]})

        source = _validate(handler, SemanticScholarConnector, _make_ref(), step=ValidationStep.QUERY_ENHANCED)
        assert source.found
        assert source.step == ValidationStep.QUERY_ENHANCED

    def test_empty_search(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"total": 0})

        source = _validate(handler, SemanticScholarConnector, _make_ref())
        assert not source.found
        assert source.errors == []


class TestOpenAlexConnector:
    WORK = {
        "id": "https://openalex.org/W1",
        "display_name": "Machine learning in healthcare",
        "authorships": [
            {"author": {"display_name": "John Smith"}},
            {"author": {"display_name": "Alice Doe"}},
        ],
        "publication_year": 2020,
        "primary_location": {"source": {"display_name": "Nature Medicine"}},
        "doi": "https://doi.org/10.1038/s41591-020-0803-x",
    }

    def test_search(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["search"] == "Machine learning in healthcare"
            return httpx.Response(200, json={"results": [self.WORK]})

        source = _validate(handler, OpenAlexConnector, _make_ref())
        assert source.found
        assert source.retrieved_data.doi == "10.1038/s41591-020-0803-x"
        assert source.retrieved_data.venue == "Nature Medicine"
        assert source.retrieved_data.authors == ["John Smith", "Alice Doe"]

    def test_doi_lookup(self):
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=self.WORK)

        source = _validate(handler, OpenAlexConnector, _make_ref(doi="10.1038/s41591-020-0803-x"))
        assert source.found
        assert len(paths) == 1
        assert paths[0].endswith("10.1038/s41591-020-0803-x")


class TestArxivConnector:
    def _ref(self, **kwargs) -> Reference:
        defaults = {
            "title": "Attention is all you need",
            "authors": ["A. Vaswani", "N. Shazeer"],
            "year": "2017",
            "raw_text": "A. Vaswani, N. Shazeer. Attention is all you need. arXiv:1706.03762, 2017.",
        }
        defaults.update(kwargs)
        return Reference(**defaults)

    def test_lookup_by_id(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=ARXIV_FEED)

        source = _validate(handler, ArxivConnector, self._ref())
        assert source.found
        assert source.match_score == 1.0
        assert source.retrieved_data.title == "Attention Is All You Need"
        assert source.retrieved_data.year == "2017"
        assert source.retrieved_data.venue == "arXiv preprint"
        assert seen[0].url.params["id_list"] == "1706.03762"

    def test_title_search(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=ARXIV_FEED)

        source = _validate(handler, ArxivConnector, self._ref(raw_text=""))
        assert source.found
        assert seen[0].url.params["search_query"] == 'ti:"Attention is all you need"'

    def test_empty_feed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=EMPTY_FEED)

        source = _validate(handler, ArxivConnector, self._ref())
        assert not source.found
        assert source.errors == []


class TestBuildConnectors:
    def test_order_and_toggles(self):
        settings = ValidationSettings(enable_openalex=False)

        async def go():
            async with httpx.AsyncClient() as client:
                return build_connectors(settings, client)

        connectors = asyncio.run(go())
        assert [c.name for c in connectors] == [
            SourceName.CROSSREF,
            SourceName.SEMANTIC_SCHOLAR,
            SourceName.ARXIV,
        ]


class TestGetJson:
    def test_404_is_none(self):
        async def go():
            transport = httpx.MockTransport(lambda request: httpx.Response(404))
            async with httpx.AsyncClient(transport=transport) as client:
                return await get_json(client, "https://example.org/missing")

        assert asyncio.run(go()) is None
