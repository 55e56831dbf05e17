"""Tests for the offline CLI commands."""

import json

from click.testing import CliRunner

from reference_validator import cli
from reference_validator.cli import main
from reference_validator.models import Reference, ValidationReport, ValidationResult, ValidationStatus
from reference_validator.session import ReviewSession

PAPER = (
    "Introduction\nWe study citation checking in detail.\n\f"
    "References\n"
    '[1] A. Smith and B. Jones, "Deep learning for citation graphs", Proc. Conf. on Graphs, 2020.\n'
    '[2] C. Doe, "Robust parsing of scanned bibliographies", J. Doc. Eng., 2019.\n'
    '[3] E. Roe and F. Poe, "Matching titles with edit distance", arXiv:2101.01234, 2021.\n'
)


class TestExtractCommand:
    def test_writes_extraction_json(self, tmp_path):
        paper = tmp_path / "paper.txt"
        paper.write_text(PAPER, encoding="utf-8")
        output = tmp_path / "refs.json"

        result = CliRunner().invoke(main, ["extract", str(paper), "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert "Extracted 3 references" in result.output

        data = json.loads(output.read_text())
        assert len(data["references"]) == 3
        assert data["method"] == "regex"
        assert data["bibliography_start_page"] == 2

    def test_llm_failure_falls_back_to_regex(self, tmp_path, monkeypatch):
        paper = tmp_path / "paper.txt"
        paper.write_text(PAPER, encoding="utf-8")
        output = tmp_path / "refs.json"
        models = []

        class DownExtractor:
            async def extract(self, text):
                raise ConnectionError("Ollama is not running")

        def fake_extractor(model):
            models.append(model)
            return DownExtractor()

        monkeypatch.delenv("REFVAL_OLLAMA_MODEL", raising=False)
        monkeypatch.setattr(cli, "_llm_extractor", fake_extractor)
        result = CliRunner().invoke(main, ["extract", str(paper), "--llm", "-m", "qwen2.5", "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert models == ["qwen2.5"]
        assert "Note: LLM extraction failed: Ollama is not running. Using regex fallback." in result.output

        data = json.loads(output.read_text())
        assert data["method"] == "regex"
        assert len(data["references"]) == 3


class TestExportCommand:
    def _report(self, tmp_path):
        ref = Reference(title="Deep learning for citation graphs", authors=["A. Smith"], year="2020")
        session = ReviewSession([ref], source="paper.txt")
        session.set_result(ValidationResult(reference_id=ref.id, status=ValidationStatus.VERIFIED))
        path = tmp_path / "report.json"
        path.write_text(session.report().model_dump_json(indent=2))
        return path

    def test_csv_to_stdout(self, tmp_path):
        result = CliRunner().invoke(main, ["export", str(self._report(tmp_path)), "-f", "csv"])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "#,Title,Authors,Year,Venue,DOI,Status,Issues,Explanation"
        assert lines[1].startswith("1,Deep learning for citation graphs,A. Smith,2020,")
        assert ",verified," in lines[1]

    def test_json_to_file(self, tmp_path):
        output = tmp_path / "out.json"
        result = CliRunner().invoke(main, ["export", str(self._report(tmp_path)), "-f", "json", "-o", str(output)])
        assert result.exit_code == 0, result.output
        report = ValidationReport.model_validate_json(output.read_text())
        assert report.source == "paper.txt"
        assert report.stats["verified"] == 1


class TestValidateCommand:
    def test_rejects_unknown_mode(self, tmp_path):
        refs = tmp_path / "refs.json"
        refs.write_text('{"source": "x", "references": []}')
        result = CliRunner().invoke(main, ["validate", str(refs), "--mode", "telepathy"])
        assert result.exit_code != 0
