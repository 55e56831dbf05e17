"""CLI entry point for the reference validator.

Commands:
  reference-validator extract <pdf|txt> [--llm]  Locate and parse the bibliography
  reference-validator validate <json>            Validate extracted references online
  reference-validator run <pdf|txt> [--llm]      Extract then validate
  reference-validator export <report> -f csv     Convert a report to CSV or JSON
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from .config import ValidationMode, ValidationSettings
from .models import ExtractionResult, ValidationReport, ValidationResult

MODE_CHOICES = [m.value for m in ValidationMode]


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def validation_options(func):
    """Options shared by every command that validates references."""
    options = [
        click.option(
            "--mode",
            type=click.Choice(MODE_CHOICES, case_sensitive=False),
            default=ValidationMode.API_ONLY.value,
            show_default=True,
            help="api-only queries each database in turn; agent-based escalates to LLM and web search",
        ),
        click.option("--no-crossref", is_flag=True, help="Disable CrossRef"),
        click.option("--no-semantic-scholar", is_flag=True, help="Disable Semantic Scholar"),
        click.option("--no-openalex", is_flag=True, help="Disable OpenAlex"),
        click.option("--no-arxiv", is_flag=True, help="Disable arXiv"),
        click.option("--delay", type=float, default=None, help="Seconds between API calls in api-only mode"),
        click.option("--mailto", envvar="REFVAL_MAILTO", default=None, help="Contact e-mail for polite API pools"),
        click.option("--s2-api-key", envvar="REFVAL_SEMANTIC_SCHOLAR_API_KEY", default=None),
        click.option("--perplexity-api-key", envvar="REFVAL_PERPLEXITY_API_KEY", default=None),
        click.option("-m", "--model", default=None, help="Ollama model name (agent-based mode)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _settings_from_options(
    mode: str,
    no_crossref: bool,
    no_semantic_scholar: bool,
    no_openalex: bool,
    no_arxiv: bool,
    delay: float | None,
    mailto: str | None,
    s2_api_key: str | None,
    perplexity_api_key: str | None,
    model: str | None,
) -> ValidationSettings:
    try:
        return ValidationSettings.from_env(
            mode=mode,
            enable_crossref=not no_crossref,
            enable_semantic_scholar=not no_semantic_scholar,
            enable_openalex=not no_openalex,
            enable_arxiv=not no_arxiv,
            rate_limit_delay=delay,
            mailto=mailto,
            semantic_scholar_api_key=s2_api_key,
            perplexity_api_key=perplexity_api_key,
            ollama_model=model,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _echo_result(result: ValidationResult) -> None:
    click.echo(f"  [{result.status.value}] {result.explanation[:100]}")


def _validate_extraction(extraction: ExtractionResult, settings: ValidationSettings) -> ValidationReport:
    from .session import ReviewSession
    from .verifier import validate_references

    session = ReviewSession(extraction.references, source=extraction.source)
    results = asyncio.run(validate_references(session.references, settings, on_result=_echo_result))
    for result in results:
        session.set_result(result)
    return session.report()


def _llm_extractor(model: str):
    from .ollama_client import OllamaClient
    from .reference_extractor import OllamaReferenceExtractor

    return OllamaReferenceExtractor(OllamaClient(model=model))


def _echo_stats(report: ValidationReport) -> None:
    click.echo(f"  Verified: {report.stats.get('verified', 0)}")
    click.echo(f"  Warning: {report.stats.get('warning', 0)}")
    click.echo(f"  Error: {report.stats.get('error', 0)}")
    click.echo(f"  Unverified: {report.stats.get('unverified', 0)}")


@click.group()
@click.version_option(package_name="reference-validator")
def main():
    """Find the bibliography of a paper and check every reference against scholarly databases."""
    pass


@main.command()
@click.argument("document_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
@click.option("--llm", is_flag=True, help="Structure references with a local Ollama model, falling back to regex")
@click.option("-m", "--model", default=None, help="Ollama model name (with --llm)")
@click.option("-v", "--verbose", is_flag=True)
def extract(document_path: Path, output: Path | None, llm: bool, model: str | None, verbose: bool):
    """Extract references from a PDF or text file (no network needed without --llm)."""
    _setup_logging(verbose)

    from .extraction import extract_from_pdf

    extractor = None
    if llm:
        try:
            extractor = _llm_extractor(ValidationSettings.from_env(ollama_model=model).ollama_model)
        except ValueError as e:
            raise click.BadParameter(str(e)) from e
    result = asyncio.run(extract_from_pdf(document_path, extractor=extractor))

    output = output or Path(f"{document_path.stem}_references.json")
    output.write_text(result.model_dump_json(indent=2))
    if result.bibliography_start_page is not None:
        click.echo(f"Bibliography on pages {result.bibliography_start_page}-{result.bibliography_end_page}")
    click.echo(f"Extracted {len(result.references)} references -> {output}")
    if result.error:
        click.echo(f"Note: {result.error}")


@main.command()
@click.argument("json_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
@validation_options
@click.option("-v", "--verbose", is_flag=True)
def validate(json_path: Path, output: Path | None, verbose: bool, **options):
    """Validate extracted references against online sources."""
    _setup_logging(verbose)
    settings = _settings_from_options(**options)

    extraction = ExtractionResult.model_validate_json(json_path.read_text())
    report = _validate_extraction(extraction, settings)

    output = output or Path(f"{json_path.stem}_validated.json")
    output.write_text(report.model_dump_json(indent=2))

    click.echo(f"Validation complete -> {output}")
    _echo_stats(report)


@main.command()
@click.argument("document_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output-dir", type=click.Path(path_type=Path), default=Path("output"))
@click.option("--llm", is_flag=True, help="Structure references with the Ollama model before validating")
@validation_options
@click.option("-v", "--verbose", is_flag=True)
def run(document_path: Path, output_dir: Path, llm: bool, verbose: bool, **options):
    """Run the full pipeline: extract -> validate."""
    _setup_logging(verbose)
    settings = _settings_from_options(**options)

    from .extraction import extract_from_pdf

    output_dir.mkdir(parents=True, exist_ok=True)

    click.echo("Step 1: Extracting references...")
    extractor = _llm_extractor(settings.ollama_model) if llm else None
    extraction = asyncio.run(extract_from_pdf(document_path, extractor=extractor))
    ext_path = output_dir / "extracted_references.json"
    ext_path.write_text(extraction.model_dump_json(indent=2))
    click.echo(f"  Extracted {len(extraction.references)} references -> {ext_path}")
    if not extraction.references:
        click.echo("No references to validate.")
        return

    click.echo(f"Step 2: Validating references ({settings.mode.value})...")
    report = _validate_extraction(extraction, settings)
    report_path = output_dir / "validation_report.json"
    report_path.write_text(report.model_dump_json(indent=2))
    _echo_stats(report)
    click.echo(f"\nAll outputs saved to {output_dir}/")


@main.command()
@click.argument("report_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(["csv", "json"], case_sensitive=False),
    default="csv",
    show_default=True,
)
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None)
def export(report_path: Path, fmt: str, output: Path | None):
    """Convert a validation report to CSV or JSON."""
    from .exporters import EXPORTERS

    report = ValidationReport.model_validate_json(report_path.read_text())
    text = EXPORTERS[fmt.lower()](report)
    if output is None:
        click.echo(text, nl=False)
        return
    output.write_text(text)
    click.echo(f"Exported {len(report.entries)} references -> {output}")
