"""In-memory review session: a reference list, its verdicts and user edits."""

import logging
from typing import Any, Optional

from .models import Reference, ReviewedReference, ValidationReport, ValidationResult
from .verifier import summarize_results

logger = logging.getLogger(__name__)


class ReviewSession:
    """Holds references in document order with at most one result each.

    Editing a reference invalidates its cached result; the reference id
    never changes.
    """

    def __init__(self, references: list[Reference], source: str = ""):
        self.source = source
        self._references: dict[str, Reference] = {}
        self._results: dict[str, ValidationResult] = {}
        for ref in references:
            if ref.id in self._references:
                raise ValueError(f"Duplicate reference id: {ref.id}")
            self._references[ref.id] = ref

    @classmethod
    def from_report(cls, report: ValidationReport) -> "ReviewSession":
        session = cls([entry.reference for entry in report.entries], source=report.source)
        for entry in report.entries:
            if entry.result is not None:
                session.set_result(entry.result)
        return session

    @property
    def references(self) -> list[Reference]:
        return list(self._references.values())

    def get(self, reference_id: str) -> Reference:
        try:
            return self._references[reference_id]
        except KeyError:
            raise KeyError(f"Unknown reference id: {reference_id}") from None

    def result_for(self, reference_id: str) -> Optional[ValidationResult]:
        return self._results.get(reference_id)

    def update_reference(self, reference_id: str, **changes: Any) -> Reference:
        """Apply user edits; malformed values are coerced like any other input."""
        current = self.get(reference_id)
        if changes.get("id", reference_id) != reference_id:
            raise ValueError("Reference id cannot be changed")

        data = current.model_dump()
        data.update(changes)
        updated = Reference.model_validate(data)
        self._references[reference_id] = updated
        if self._results.pop(reference_id, None) is not None:
            logger.debug("Cleared cached result for edited reference %s", reference_id[:8])
        return updated

    def set_result(self, result: ValidationResult) -> None:
        self.get(result.reference_id)
        self._results[result.reference_id] = result

    def pending(self) -> list[Reference]:
        """References without a result, in document order."""
        return [ref for ref in self._references.values() if ref.id not in self._results]

    def report(self) -> ValidationReport:
        entries = [
            ReviewedReference(reference=ref, result=self._results.get(ref.id))
            for ref in self._references.values()
        ]
        return ValidationReport(
            source=self.source,
            entries=entries,
            stats=summarize_results(list(self._results.values())),
        )
