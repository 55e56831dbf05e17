"""Tests for the document loading module."""

import pytest

from reference_validator.pdf_parser import (
    document_from_text,
    find_column_gap,
    load_document,
    normalize_typography,
)


class TestDocumentFromText:
    def test_form_feed_splits_pages(self):
        document = document_from_text("Page one text.\fPage two text.")
        assert [p.page_number for p in document.pages] == [1, 2]
        assert document.full_text == "Page one text.\n\nPage two text."
        assert document.pages[1].start_index == len("Page one text.") + 2

    def test_single_page(self):
        document = document_from_text("Just one page.")
        assert len(document.pages) == 1
        assert document.pages[0].end_index == len("Just one page.")

    def test_typography_normalized(self):
        document = document_from_text("“Quoted” text – with a dash")
        assert document.full_text == '"Quoted" text - with a dash'


class TestNormalizeTypography:
    def test_ligatures(self):
        assert normalize_typography("ﬁnal ﬂow") == "final flow"

    def test_ascii_untouched(self):
        assert normalize_typography("plain text") == "plain text"


class TestFindColumnGap:
    def test_two_columns(self):
        left = [50 + i for i in range(0, 200, 5)]
        right = [350 + i for i in range(0, 200, 5)]
        gap = find_column_gap(left + right, 600)
        assert gap is not None
        assert 250 <= gap <= 350

    def test_single_column(self):
        centers = [50 + i for i in range(0, 500, 2)]
        assert find_column_gap(centers, 600) is None

    def test_no_words(self):
        assert find_column_gap([], 600) is None
        assert find_column_gap([100.0], 0) is None


class TestLoadDocument:
    def test_text_file(self, tmp_path):
        path = tmp_path / "paper.txt"
        path.write_text("Body of the paper.\fReferences\n[1] A. Smith, Title, 2020.\n", encoding="utf-8")
        document = load_document(path)
        assert len(document.pages) == 2
        assert "[1] A. Smith" in document.pages[1].text

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_document(tmp_path / "missing.pdf")
