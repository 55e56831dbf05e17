"""Turn the accumulated source results for one reference into a verdict.

The best source is the found source with the highest match score; on
ties the first one seen wins, so source order matters. Its record is
compared field by field with the extracted reference.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .matching import author_list_overlap, title_similarity
from .models import (
    IssueSeverity,
    IssueType,
    Reference,
    RetrievedReferenceData,
    SourceName,
    ValidationIssue,
    ValidationSource,
    ValidationStatus,
)
from .sources.base import parse_year

logger = logging.getLogger(__name__)

TITLE_MATCH_THRESHOLD = 0.70
AUTHOR_MATCH_THRESHOLD = 0.60
YEAR_TOLERANCE = 1
WEB_SEARCH_CONFIDENCE_THRESHOLD = 0.70


@dataclass
class AnalysisOutcome:
    status: ValidationStatus
    issues: list[ValidationIssue] = field(default_factory=list)
    best_match: Optional[RetrievedReferenceData] = None
    best_source: Optional[ValidationSource] = None
    confidence: float = 0.0


def find_best_source(sources: list[ValidationSource]) -> Optional[ValidationSource]:
    best = None
    for source in sources:
        if not source.found or source.match_score <= 0:
            continue
        if best is None or source.match_score > best.match_score:
            best = source
    return best


def _is_weak_web_match(source: ValidationSource) -> bool:
    return (
        source.name == SourceName.WEB_SEARCH
        and source.confidence is not None
        and 0 < source.confidence < WEB_SEARCH_CONFIDENCE_THRESHOLD
    )


def analyze_results(reference: Reference, sources: list[ValidationSource]) -> AnalysisOutcome:
    """Status, issues and best match for one reference."""
    best_source = find_best_source(sources)
    if best_source is None or best_source.retrieved_data is None:
        return AnalysisOutcome(status=ValidationStatus.UNVERIFIED)

    best = best_source.retrieved_data
    issues: list[ValidationIssue] = []

    if _is_weak_web_match(best_source):
        issues.append(
            ValidationIssue(
                type=IssueType.NOT_FOUND,
                severity=IssueSeverity.WARNING,
                message=(
                    f"Web search found a possible match ({best_source.confidence * 100:.0f}% "
                    "confidence). Treat this as unverified unless you confirm manually."
                ),
                expected=reference.title,
                found=best.title,
            )
        )
        return AnalysisOutcome(
            status=ValidationStatus.WARNING,
            issues=issues,
            best_match=best,
            best_source=best_source,
            confidence=best_source.confidence,
        )

    # A side with nothing to compare counts as agreeing
    if reference.title and best.title:
        title_score = title_similarity(reference.title, best.title)
        if title_score < TITLE_MATCH_THRESHOLD:
            issues.append(
                ValidationIssue(
                    type=IssueType.TITLE_MISMATCH,
                    severity=IssueSeverity.ERROR if title_score < 0.5 else IssueSeverity.WARNING,
                    message=f"Title similarity: {title_score * 100:.0f}%",
                    expected=reference.title,
                    found=best.title,
                )
            )
    elif reference.title:
        title_score = 0.0
    else:
        title_score = 1.0

    if reference.authors and best.authors:
        author_score = author_list_overlap(reference.authors, best.authors)
        if author_score < AUTHOR_MATCH_THRESHOLD:
            issues.append(
                ValidationIssue(
                    type=IssueType.AUTHOR_MISMATCH,
                    severity=IssueSeverity.ERROR if author_score < 0.4 else IssueSeverity.WARNING,
                    message=f"Author overlap: {author_score * 100:.0f}%",
                    expected=", ".join(reference.authors),
                    found=", ".join(best.authors),
                )
            )
    else:
        author_score = 1.0

    year_match = True
    ref_year, found_year = parse_year(reference.year), parse_year(best.year)
    if ref_year is not None and found_year is not None:
        year_diff = abs(ref_year - found_year)
        year_match = year_diff <= YEAR_TOLERANCE
        if year_diff > 0:
            issues.append(
                ValidationIssue(
                    type=IssueType.YEAR_MISMATCH,
                    severity=IssueSeverity.WARNING,
                    message=f"Year difference: {year_diff} year(s)",
                    expected=reference.year,
                    found=best.year,
                )
            )

    confidence = 0.5 * title_score + 0.3 * author_score + (0.2 if year_match else 0.0)

    title_ok = title_score >= TITLE_MATCH_THRESHOLD
    authors_ok = author_score >= AUTHOR_MATCH_THRESHOLD
    if title_ok and authors_ok and year_match:
        status = ValidationStatus.VERIFIED
    elif title_ok or authors_ok:
        if title_score >= 0.5 or author_score >= 0.5:
            status = ValidationStatus.WARNING
        else:
            status = ValidationStatus.ERROR
    elif best_source.match_score > 0.5:
        status = ValidationStatus.WARNING
    else:
        status = ValidationStatus.ERROR

    logger.debug(
        "Analysis for '%s': %s via %s (title %.2f, authors %.2f, year %s)",
        reference.title[:50],
        status.value,
        best_source.name.value,
        title_score,
        author_score,
        year_match,
    )
    return AnalysisOutcome(
        status=status,
        issues=issues,
        best_match=best,
        best_source=best_source,
        confidence=round(confidence, 4),
    )
