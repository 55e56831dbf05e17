"""Structured explanations of validation verdicts, plus their one-line text form."""

from typing import Optional

from .analyzer import AnalysisOutcome
from .matching import author_list_overlap, title_similarity
from .models import (
    ExplanationKind,
    FieldDiff,
    FieldMatch,
    FieldRow,
    IssueType,
    Reference,
    SourceName,
    ValidationExplanation,
    ValidationSource,
    ValidationStatus,
    ValidationStep,
)
from .parsers.fields import doi_match
from .sources.base import parse_year

MAX_HINT_LENGTH = 240

SOURCE_LABELS = {
    SourceName.CROSSREF: "CrossRef",
    SourceName.SEMANTIC_SCHOLAR: "Semantic Scholar",
    SourceName.OPENALEX: "OpenAlex",
    SourceName.ARXIV: "arXiv",
    SourceName.WEB_SEARCH: "Web search",
}

NEXT_STEPS = [
    "Check for OCR/typos in the title.",
    "Try removing venue/arXiv text and re-validate.",
    "If you have a DOI, verify via doi.org.",
]

FIELD_ORDER = ["year", "title", "authors", "doi", "venue"]
TABLE_FIELDS = ["title", "authors", "year", "venue", "doi"]


def label_for_source(name: SourceName) -> str:
    return SOURCE_LABELS.get(name, name.value)


def build_query_summary(reference: Reference) -> str:
    parts = []
    if reference.title:
        parts.append(f'title="{reference.title}"')
    if reference.authors:
        authors = ", ".join(reference.authors[:3])
        if len(reference.authors) > 3:
            authors += ", ..."
        parts.append(f'authors="{authors}"')
    if reference.year:
        parts.append(f"year={reference.year}")
    if reference.doi:
        parts.append(f"doi={reference.doi}")
    return " | ".join(parts) or "N/A"


def _same(a: str, b: str) -> bool:
    return " ".join(a.lower().split()) == " ".join(b.lower().split())


def _field_equal(name: str, a: str, b: str) -> bool:
    if name == "doi":
        return doi_match(a, b)
    return _same(a, b)


def _field_values(reference: Reference, outcome: AnalysisOutcome) -> dict[str, tuple[str, str]]:
    best = outcome.best_match
    return {
        "title": (reference.title, best.title if best else ""),
        "authors": (", ".join(reference.authors), ", ".join(best.authors) if best else ""),
        "year": (reference.year, best.year if best else ""),
        "venue": (reference.venue, best.venue if best else ""),
        "doi": (reference.doi or "", (best.doi or "") if best else ""),
    }


def _compare_fields(
    reference: Reference, outcome: AnalysisOutcome
) -> tuple[list[FieldDiff], list[FieldMatch]]:
    best = outcome.best_match
    issue_types = {i.type for i in outcome.issues}
    diffs: list[FieldDiff] = []
    matches: list[FieldMatch] = []
    if best is None:
        return diffs, matches

    if reference.title and best.title:
        score = title_similarity(reference.title, best.title)
        if IssueType.TITLE_MISMATCH in issue_types:
            diffs.append(
                FieldDiff(
                    field="title",
                    expected=reference.title,
                    found=best.title,
                    note=f"{score * 100:.0f}% similarity",
                )
            )
        else:
            matches.append(FieldMatch(field="title", value=f"Title {score * 100:.0f}%"))

    if reference.authors and best.authors:
        score = author_list_overlap(reference.authors, best.authors)
        if IssueType.AUTHOR_MISMATCH in issue_types:
            diffs.append(
                FieldDiff(
                    field="authors",
                    expected=", ".join(reference.authors),
                    found=", ".join(best.authors),
                    note=f"{score * 100:.0f}% overlap",
                )
            )
        else:
            matches.append(FieldMatch(field="authors", value=f"Authors {score * 100:.0f}%"))

    if reference.year and best.year:
        ref_year, found_year = parse_year(reference.year), parse_year(best.year)
        if ref_year is not None and found_year is not None:
            diff = abs(ref_year - found_year)
            if diff > 0:
                diffs.append(
                    FieldDiff(
                        field="year",
                        expected=reference.year,
                        found=best.year,
                        note=f"off by {diff}",
                    )
                )
            else:
                matches.append(FieldMatch(field="year", value="Year matches"))
        elif reference.year != best.year:
            diffs.append(FieldDiff(field="year", expected=reference.year, found=best.year))

    for name, label, ref_value, found_value in (
        ("doi", "DOI", reference.doi, best.doi),
        ("venue", "Venue", reference.venue, best.venue),
    ):
        if not ref_value and not found_value:
            continue
        expected, found = ref_value or "N/A", found_value or "N/A"
        if _field_equal(name, ref_value or "", found_value or ""):
            matches.append(FieldMatch(field=name, value=f"{label} matches"))
        else:
            diffs.append(FieldDiff(field=name, expected=expected, found=found))

    diffs.sort(key=lambda d: FIELD_ORDER.index(d.field))
    matches.sort(key=lambda m: FIELD_ORDER.index(m.field))
    return diffs, matches


def _stage_labels(sources: list[ValidationSource]) -> list[str]:
    labels = []
    if any(s.step == ValidationStep.API for s in sources):
        labels.append("APIs")
    if any(s.step == ValidationStep.QUERY_ENHANCED for s in sources):
        labels.append("Query-enhanced APIs")
    if any(s.name == SourceName.WEB_SEARCH for s in sources):
        labels.append("Web search")
    return labels


def build_explanation(
    reference: Reference,
    outcome: AnalysisOutcome,
    sources: list[ValidationSource],
    staged: bool = False,
    hint: Optional[str] = None,
    query_label: str = "Original query",
) -> ValidationExplanation:
    """Explain a verdict; `hint` is appended to the next steps when short enough."""
    query_summary = build_query_summary(reference)

    if outcome.status == ValidationStatus.UNVERIFIED:
        tried = list(dict.fromkeys(label_for_source(s.name) for s in sources))
        next_steps = list(NEXT_STEPS)
        if hint and hint.strip() and len(hint.strip()) < MAX_HINT_LENGTH:
            next_steps.append(hint.strip())
        return ValidationExplanation(
            kind=ExplanationKind.UNVERIFIED,
            query_label=query_label,
            query_summary=query_summary,
            tried_sources=tried or ["None (no sources enabled)"],
            next_steps=next_steps,
        )

    has_differences = any(i.type != IssueType.NOT_FOUND for i in outcome.issues)
    if outcome.status == ValidationStatus.VERIFIED and not has_differences:
        return ValidationExplanation(
            kind=ExplanationKind.VERIFIED,
            query_label=query_label,
            query_summary=query_summary,
        )

    diffs, matches = _compare_fields(reference, outcome)
    values = _field_values(reference, outcome)
    table = [
        FieldRow(
            field=name,
            reference=values[name][0],
            retrieved=values[name][1],
            matches=bool(values[name][0]) and _field_equal(name, *values[name]),
        )
        for name in TABLE_FIELDS
    ]

    tried: list[str] = []
    if outcome.best_source is not None:
        tried.append(label_for_source(outcome.best_source.name))
    if staged:
        tried.extend(_stage_labels(sources))

    return ValidationExplanation(
        kind=ExplanationKind.WARN_OR_ERROR,
        query_label=query_label,
        query_summary=query_summary,
        tried_sources=tried or None,
        what_differs=diffs,
        what_matches=matches,
        table=table,
    )


def explanation_to_text(data: ValidationExplanation) -> str:
    if data.kind == ExplanationKind.VERIFIED:
        return f"Query: {data.query_summary}"
    if data.kind == ExplanationKind.UNVERIFIED:
        tried = ", ".join(data.tried_sources or []) or "N/A"
        steps = " ".join(data.next_steps or [])
        return f"Not found. Tried: {tried}. Query: {data.query_summary}. {steps}".strip()
    differs = "; ".join(f"{d.field}: {d.expected} -> {d.found}" for d in data.what_differs or [])
    return f"Possible mismatch. Query: {data.query_summary}. Differs: {differs}".strip()
