"""Pydantic data models shared across all pipeline stages.

These models serve double duty:
1. Data validation and serialization between extraction, validation and export
2. Structured output schemas for Ollama (via model_json_schema())
"""

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _new_id() -> str:
    return str(uuid.uuid4())


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


# --- Extraction ---


class BoundingBox(BaseModel):
    x: float
    y: float
    width: float
    height: float


class Reference(BaseModel):
    """A single reference recovered from a bibliography.

    User edits may leave fields as None or in the wrong shape; they are
    coerced to empty values instead of failing validation.
    """

    id: str = Field(default_factory=_new_id, description="Stable identity, never changes")
    raw_text: str = ""
    title: str = ""
    authors: list[str] = Field(default_factory=list)
    year: str = ""
    venue: str = ""
    doi: Optional[str] = None
    urls: list[str] = Field(default_factory=list)
    page_number: Optional[int] = None
    bounding_box: Optional[BoundingBox] = None
    citation_number: Optional[int] = None

    @field_validator("raw_text", "title", "venue", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("authors", "urls", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("page_number", "citation_number", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("doi", mode="before")
    @classmethod
    def _coerce_doi(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class ExtractedReference(Reference):
    """A parsed reference plus its offset inside the normalized bibliography text."""

    relative_index: int = 0


class LLMReference(BaseModel):
    """One bibliography entry as structured by the extraction LLM."""

    raw_text: str = ""
    title: str = ""
    authors: list[str] = Field(default_factory=list)
    year: str = ""
    venue: str = ""
    doi: Optional[str] = None
    urls: list[str] = Field(default_factory=list)

    @field_validator("raw_text", "title", "year", "venue", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("authors", "urls", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> list[str]:
        return _string_list(value)

    @field_validator("doi", mode="before")
    @classmethod
    def _coerce_doi(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None


class LLMReferenceList(BaseModel):
    references: list[LLMReference] = Field(default_factory=list, description="Every reference in the text")


class DocumentPage(BaseModel):
    page_number: int
    text: str
    start_index: int
    end_index: int


class DocumentText(BaseModel):
    """Full document text with per-page offset ranges."""

    full_text: str
    pages: list[DocumentPage] = Field(default_factory=list)

    @classmethod
    def from_pages(cls, page_texts: list[str]) -> "DocumentText":
        """Build a document whose pages are joined by a blank line."""
        pages: list[DocumentPage] = []
        offset = 0
        for i, text in enumerate(page_texts):
            pages.append(
                DocumentPage(
                    page_number=i + 1,
                    text=text,
                    start_index=offset,
                    end_index=offset + len(text),
                )
            )
            offset += len(text) + 2
        return cls(full_text="\n\n".join(page_texts), pages=pages)


class BibliographySection(BaseModel):
    text: str
    start_page: int
    end_page: int
    start_index: int


class ExtractionMethod(str, Enum):
    REGEX = "regex"
    STRUCTURED = "structured"
    LLM = "llm"


class ExtractionResult(BaseModel):
    """Output of the extraction pipeline for one document."""

    source: str
    references: list[Reference]
    bibliography_start_page: Optional[int] = None
    bibliography_end_page: Optional[int] = None
    method: ExtractionMethod = ExtractionMethod.REGEX
    error: Optional[str] = None


# --- Validation ---


class SourceName(str, Enum):
    CROSSREF = "crossref"
    SEMANTIC_SCHOLAR = "semantic_scholar"
    OPENALEX = "openalex"
    ARXIV = "arxiv"
    WEB_SEARCH = "web_search"


class ValidationStep(str, Enum):
    API = "api"
    QUERY_ENHANCED = "query_enhanced"
    WEB_SEARCH = "web_search"


class RetrievedReferenceData(BaseModel):
    """Normalized record returned by any source."""

    title: str = ""
    authors: list[str] = Field(default_factory=list)
    year: str = ""
    venue: str = ""
    doi: Optional[str] = None
    url: Optional[str] = None

    @field_validator("title", "venue", "year", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("authors", mode="before")
    @classmethod
    def _coerce_authors(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            return [value] if value.strip() else []
        if not isinstance(value, (list, tuple)):
            return []
        return [str(v) for v in value if v]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class ValidationSource(BaseModel):
    """One connector's outcome for one reference."""

    name: SourceName
    found: bool = False
    match_score: float = 0.0
    retrieved_data: Optional[RetrievedReferenceData] = None
    errors: list[str] = Field(default_factory=list)
    confidence: Optional[float] = None
    step: Optional[ValidationStep] = None

    @field_validator("match_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        return _clamp(value or 0.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        return _clamp(value)

    @model_validator(mode="after")
    def _not_found_has_no_data(self) -> "ValidationSource":
        if not self.found:
            self.match_score = 0.0
            self.retrieved_data = None
        return self


class ValidationStatus(str, Enum):
    VERIFIED = "verified"
    WARNING = "warning"
    ERROR = "error"
    UNVERIFIED = "unverified"
    PENDING = "pending"


class IssueType(str, Enum):
    TITLE_MISMATCH = "title_mismatch"
    AUTHOR_MISMATCH = "author_mismatch"
    YEAR_MISMATCH = "year_mismatch"
    DOI_MISMATCH = "doi_mismatch"
    VENUE_MISMATCH = "venue_mismatch"
    NOT_FOUND = "not_found"


class IssueSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class ValidationIssue(BaseModel):
    type: IssueType
    severity: IssueSeverity
    message: str
    expected: Optional[str] = None
    found: Optional[str] = None


class ExplanationKind(str, Enum):
    VERIFIED = "verified"
    WARN_OR_ERROR = "warn_or_error"
    UNVERIFIED = "unverified"


class FieldDiff(BaseModel):
    field: str
    expected: str
    found: str
    note: Optional[str] = None


class FieldMatch(BaseModel):
    field: str
    value: str


class FieldRow(BaseModel):
    field: str
    reference: str
    retrieved: str
    matches: bool


class ValidationExplanation(BaseModel):
    """Structured explanation of a verdict, rendered by exporters and the CLI."""

    kind: ExplanationKind
    query_label: str
    query_summary: str
    tried_sources: Optional[list[str]] = None
    what_differs: Optional[list[FieldDiff]] = None
    what_matches: Optional[list[FieldMatch]] = None
    table: Optional[list[FieldRow]] = None
    next_steps: Optional[list[str]] = None


class ValidationResult(BaseModel):
    """Terminal verdict for one reference."""

    reference_id: str
    status: ValidationStatus
    sources: list[ValidationSource] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)
    best_match: Optional[RetrievedReferenceData] = None
    explanation: str = ""
    explanation_data: Optional[ValidationExplanation] = None


class ValidationProgress(BaseModel):
    total: int
    completed: int
    current: str = ""


# --- LLM capabilities ---


class QueryVariant(BaseModel):
    """One rewritten search query proposed by the query-enhancement capability."""

    title: str = ""
    authors: list[str] = Field(default_factory=list)
    year: Optional[str] = None
    description: str = ""

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)


class QueryVariantList(BaseModel):
    variants: list[QueryVariant] = Field(description="3 to 5 alternative search queries")


class AttemptedQuery(BaseModel):
    title: str
    authors: list[str] = Field(default_factory=list)
    year: Optional[str] = None
    description: str = ""


# --- Reports ---


class ReviewedReference(BaseModel):
    reference: Reference
    result: Optional[ValidationResult] = None


class ValidationReport(BaseModel):
    """A reference list together with the verdicts computed for it."""

    source: str = ""
    entries: list[ReviewedReference] = Field(default_factory=list)
    stats: dict = Field(
        default_factory=dict,
        description='e.g. {"verified": 12, "warning": 3, "unverified": 1}',
    )
