"""Staged validation: parallel APIs, query enhancement, web search, finalize.

Each stage runs only after the previous one has joined, and the single
check between stages is whether the best score so far is strong enough
to stop escalating. Capabilities that are not configured are skipped.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..analyzer import analyze_results
from ..explanation import build_explanation, explanation_to_text
from ..models import (
    AttemptedQuery,
    Reference,
    SourceName,
    ValidationResult,
    ValidationSource,
    ValidationStatus,
    ValidationStep,
)
from ..sources.base import BaseConnector, compute_match_score
from .base import (
    NotFoundExplainer,
    QueryVariantGenerator,
    WebSearcher,
    apply_variant,
    original_query,
)
from .explanation import fallback_explanation

logger = logging.getLogger(__name__)

STRONG_MATCH_THRESHOLD = 0.7
WEB_SEARCH_CONFIDENCE_THRESHOLD = 0.70


class Stage(str, Enum):
    API = "api"
    QUERY_ENHANCEMENT = "query_enhancement"
    WEB_SEARCH = "web_search"
    FINALIZE = "finalize"
    DONE = "done"


@dataclass
class RunState:
    """Accumulator for one validation run; never shared between runs."""

    reference: Reference
    stage: Stage = Stage.API
    sources: list[ValidationSource] = field(default_factory=list)
    attempted_queries: list[AttemptedQuery] = field(default_factory=list)
    result: Optional[ValidationResult] = None


def best_score(sources: list[ValidationSource]) -> float:
    return max((s.match_score for s in sources if s.found), default=0.0)


async def run_connectors(
    connectors: list[BaseConnector], reference: Reference, step: ValidationStep
) -> list[ValidationSource]:
    """Query every connector concurrently; results keep connector order."""
    if not connectors:
        return []
    return list(await asyncio.gather(*(c.validate(reference, step=step) for c in connectors)))


class StagedValidator:
    def __init__(
        self,
        connectors: list[BaseConnector],
        query_generator: Optional[QueryVariantGenerator] = None,
        web_searcher: Optional[WebSearcher] = None,
        explainer: Optional[NotFoundExplainer] = None,
    ):
        self.connectors = connectors
        self.query_generator = query_generator
        self.web_searcher = web_searcher
        self.explainer = explainer
        self._handlers = {
            Stage.API: self._api_stage,
            Stage.QUERY_ENHANCEMENT: self._query_enhancement_stage,
            Stage.WEB_SEARCH: self._web_search_stage,
            Stage.FINALIZE: self._finalize_stage,
        }

    async def validate(self, reference: Reference) -> ValidationResult:
        state = RunState(reference=reference)
        state.attempted_queries.append(AttemptedQuery(**original_query(reference).model_dump()))

        while state.stage != Stage.DONE:
            stage = state.stage
            started = time.perf_counter()
            state.stage = await self._handlers[stage](state)
            logger.info(
                "ref %s: stage %s took %.2fs (best score %.2f)",
                reference.id[:8],
                stage.value,
                time.perf_counter() - started,
                best_score(state.sources),
            )
        return state.result

    async def _api_stage(self, state: RunState) -> Stage:
        state.sources.extend(await run_connectors(self.connectors, state.reference, ValidationStep.API))
        if best_score(state.sources) > STRONG_MATCH_THRESHOLD:
            return Stage.FINALIZE
        return Stage.QUERY_ENHANCEMENT

    async def _query_enhancement_stage(self, state: RunState) -> Stage:
        if self.query_generator is None or not self.connectors:
            return Stage.WEB_SEARCH

        try:
            variants = await self.query_generator.generate(state.reference)
        except Exception as e:
            logger.warning("Query generator failed: %s", e)
            variants = [original_query(state.reference, "Original query (fallback)")]

        for variant in variants:
            state.attempted_queries.append(AttemptedQuery(**variant.model_dump()))
            results = await run_connectors(
                self.connectors,
                apply_variant(state.reference, variant),
                ValidationStep.QUERY_ENHANCED,
            )
            state.sources.extend(results)
            if best_score(results) > STRONG_MATCH_THRESHOLD:
                logger.info("Query variant '%s' found a strong match", variant.description)
                return Stage.FINALIZE
        return Stage.WEB_SEARCH

    async def _web_search_stage(self, state: RunState) -> Stage:
        if self.web_searcher is None:
            return Stage.FINALIZE

        source = ValidationSource(name=SourceName.WEB_SEARCH, step=ValidationStep.WEB_SEARCH)
        try:
            record = await self.web_searcher.search(state.reference)
        except Exception as e:
            logger.warning("Web search failed: %s", e)
            record = None
            source.errors.append(f"Web search error: {e}")

        if record is not None:
            confidence = compute_match_score(state.reference, record)
            source = ValidationSource(
                name=SourceName.WEB_SEARCH,
                step=ValidationStep.WEB_SEARCH,
                found=confidence > 0,
                match_score=confidence,
                confidence=confidence,
                retrieved_data=record,
            )
        elif not source.errors:
            source.errors.append("Web search returned no structured record")

        if source.found:
            state.sources.append(source)
            if (source.confidence or 0.0) >= WEB_SEARCH_CONFIDENCE_THRESHOLD:
                logger.info("Web search confidence %.2f is sufficient", source.confidence)
        return Stage.FINALIZE

    async def _finalize_stage(self, state: RunState) -> Stage:
        reference = state.reference
        outcome = analyze_results(reference, state.sources)

        hint = None
        if outcome.status == ValidationStatus.UNVERIFIED:
            api_sources = [s for s in state.sources if s.name != SourceName.WEB_SEARCH]
            hint = await self._explain(reference, state.attempted_queries, api_sources)

        data = build_explanation(reference, outcome, state.sources, staged=True, hint=hint)
        state.result = ValidationResult(
            reference_id=reference.id,
            status=outcome.status,
            sources=state.sources,
            issues=outcome.issues,
            best_match=outcome.best_match,
            explanation=explanation_to_text(data),
            explanation_data=data,
        )
        return Stage.DONE

    async def _explain(
        self,
        reference: Reference,
        attempted_queries: list[AttemptedQuery],
        sources: list[ValidationSource],
    ) -> str:
        if self.explainer is None:
            return fallback_explanation(reference, attempted_queries, sources)
        try:
            return await self.explainer.explain(reference, attempted_queries, sources)
        except Exception as e:
            logger.warning("Explainer failed: %s", e)
            return fallback_explanation(reference, attempted_queries, sources)
