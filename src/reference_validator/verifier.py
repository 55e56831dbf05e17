"""Validation entry points: simple sequential mode, mode routing and batches.

Simple mode asks each enabled connector in turn, pausing between calls to
stay polite to the public APIs, then analyzes everything it collected.
Agent-based mode delegates to agents.StagedValidator.
"""

import asyncio
import logging
from collections import Counter
from typing import Callable, Optional

import httpx

from .agents import OllamaExplainer, OllamaQueryEnhancer, PerplexityWebSearcher, StagedValidator
from .analyzer import analyze_results
from .config import ValidationMode, ValidationSettings
from .explanation import build_explanation, build_query_summary, explanation_to_text
from .models import (
    ExplanationKind,
    IssueSeverity,
    IssueType,
    Reference,
    ValidationExplanation,
    ValidationIssue,
    ValidationProgress,
    ValidationResult,
    ValidationStatus,
    ValidationStep,
)
from .ollama_client import OllamaClient
from .sources import BaseConnector, build_connectors

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ValidationProgress], None]
ResultCallback = Callable[[ValidationResult], None]


async def validate_reference_simple(
    reference: Reference,
    connectors: list[BaseConnector],
    delay: float = 0.5,
) -> ValidationResult:
    """Query connectors one at a time with `delay` seconds between calls."""
    if delay < 0:
        raise ValueError(f"delay must be non-negative, got {delay}")

    sources = []
    for connector in connectors:
        source = await connector.validate(reference, step=ValidationStep.API)
        sources.append(source)
        await asyncio.sleep(delay)

    outcome = analyze_results(reference, sources)
    data = build_explanation(reference, outcome, sources)
    if outcome.best_source is not None:
        logger.info(
            "ref %s: %s via %s (%.2f)",
            reference.id[:8],
            outcome.status.value,
            outcome.best_source.name.value,
            outcome.best_source.match_score,
        )
    else:
        logger.warning("ref %s: not found in any source", reference.id[:8])

    return ValidationResult(
        reference_id=reference.id,
        status=outcome.status,
        sources=sources,
        issues=outcome.issues,
        best_match=outcome.best_match,
        explanation=explanation_to_text(data),
        explanation_data=data,
    )


def build_staged_validator(
    settings: ValidationSettings,
    client: httpx.AsyncClient,
    connectors: Optional[list[BaseConnector]] = None,
) -> StagedValidator:
    """Wire the staged pipeline from settings: Ollama agents, Perplexity when keyed."""
    llm = OllamaClient(model=settings.ollama_model)
    web_searcher = None
    if settings.perplexity_api_key:
        web_searcher = PerplexityWebSearcher(client, settings.perplexity_api_key, extractor=llm)
    else:
        logger.info("No Perplexity API key configured; web search stage disabled")
    return StagedValidator(
        connectors if connectors is not None else build_connectors(settings, client),
        query_generator=OllamaQueryEnhancer(llm),
        web_searcher=web_searcher,
        explainer=OllamaExplainer(llm),
    )


async def validate_reference(
    reference: Reference,
    settings: ValidationSettings,
    client: httpx.AsyncClient,
    staged_validator: Optional[StagedValidator] = None,
) -> ValidationResult:
    """Validate one reference in the mode the settings select."""
    if settings.mode == ValidationMode.AGENT_BASED:
        validator = staged_validator or build_staged_validator(settings, client)
        return await validator.validate(reference)
    return await validate_reference_simple(
        reference, build_connectors(settings, client), delay=settings.rate_limit_delay
    )


def failed_result(reference: Reference, error: Exception) -> ValidationResult:
    message = f"Validation failed: {error}"
    return ValidationResult(
        reference_id=reference.id,
        status=ValidationStatus.UNVERIFIED,
        issues=[
            ValidationIssue(
                type=IssueType.NOT_FOUND,
                severity=IssueSeverity.ERROR,
                message=message,
                expected="",
                found="",
            )
        ],
        explanation=message,
        explanation_data=ValidationExplanation(
            kind=ExplanationKind.UNVERIFIED,
            query_label="Original query",
            query_summary=build_query_summary(reference),
            tried_sources=["None (validation failed)"],
            next_steps=["Try validating again later."],
        ),
    )


async def validate_references(
    references: list[Reference],
    settings: ValidationSettings,
    on_progress: Optional[ProgressCallback] = None,
    on_result: Optional[ResultCallback] = None,
    client: Optional[httpx.AsyncClient] = None,
    staged_validator: Optional[StagedValidator] = None,
) -> list[ValidationResult]:
    """Validate references one after another, reporting progress as it goes.

    An unexpected error for one reference produces an unverified result
    for it instead of aborting the batch.
    """
    if client is None:
        async with settings.create_http_client() as owned_client:
            return await validate_references(
                references, settings, on_progress, on_result, owned_client, staged_validator
            )

    if settings.mode == ValidationMode.AGENT_BASED and staged_validator is None:
        staged_validator = build_staged_validator(settings, client)

    results: list[ValidationResult] = []
    for i, reference in enumerate(references):
        label = reference.title or f"Reference {i + 1}"
        logger.info("Validating reference %d/%d: %s", i + 1, len(references), label[:60])
        if on_progress:
            on_progress(ValidationProgress(total=len(references), completed=i, current=label))
        try:
            result = await validate_reference(reference, settings, client, staged_validator)
        except Exception as e:
            logger.exception("Validation error for '%s'", label[:60])
            result = failed_result(reference, e)
        results.append(result)
        if on_result:
            on_result(result)

    if on_progress:
        on_progress(ValidationProgress(total=len(references), completed=len(references)))

    logger.info("Validation complete: %s", summarize_results(results))
    return results


def summarize_results(results: list[ValidationResult]) -> dict:
    status_counts = Counter(r.status.value for r in results)
    return {
        "total": len(results),
        "verified": status_counts.get("verified", 0),
        "warning": status_counts.get("warning", 0),
        "error": status_counts.get("error", 0),
        "unverified": status_counts.get("unverified", 0),
    }
