"""Export a validation report as JSON or a flattened CSV table."""

import csv
import io

from .models import ValidationReport, ValidationStatus

CSV_COLUMNS = ["#", "Title", "Authors", "Year", "Venue", "DOI", "Status", "Issues", "Explanation"]


def to_json(report: ValidationReport) -> str:
    return report.model_dump_json(indent=2)


def to_csv(report: ValidationReport) -> str:
    """One row per reference; references without a result count as unverified."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for idx, entry in enumerate(report.entries, start=1):
        ref, result = entry.reference, entry.result
        status = result.status if result else ValidationStatus.UNVERIFIED
        writer.writerow(
            [
                ref.citation_number or idx,
                ref.title,
                "; ".join(ref.authors),
                ref.year,
                ref.venue,
                ref.doi or "",
                status.value,
                "; ".join(issue.message for issue in result.issues) if result else "",
                result.explanation if result else "",
            ]
        )
    return buffer.getvalue()


EXPORTERS = {
    "json": to_json,
    "csv": to_csv,
}
