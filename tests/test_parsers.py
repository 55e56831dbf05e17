"""Tests for the bibliography splitting strategies and per-entry field extraction."""

from reference_validator.parsers import (
    AuthorYearStrategy,
    BracketedStrategy,
    FallbackStrategy,
    PeriodNumberedStrategy,
    TwoColumnStrategy,
    extract_references,
    normalize_bibliography_text,
    parse_reference_text,
)
from reference_validator.parsers.fields import (
    extract_arxiv_id,
    extract_doi,
    extract_urls,
    extract_year,
)

BRACKETED_TWO = (
    "[1] Smith J. A Great Title. Journal X, 2020. "
    "[2] Doe A. Another Title. Conf Y, 2019."
)

BRACKETED_THREE = (
    '[1] A. Smith and B. Jones, "Deep learning for citation graphs", Proc. Conf. on Graphs, 2020.\n'
    '[2] C. Doe, "Robust parsing of scanned bibliographies", J. Doc. Eng., 2019.\n'
    '[3] E. Roe and F. Poe, "Matching titles with edit distance", arXiv:2101.01234, 2021.'
)

# Number 3 lost to OCR; numbers glued to the first author
TWO_COLUMN_GLUED = (
    "1J. Smith, K. Lee. Neural parsing of references. In Proc. ACL, 2019. "
    "2M. Brown. Citation graphs at scale. Journal of Data, 2020. "
    "4P. White, Q. Black. Fuzzy matching for titles. Information Review, 2021."
)

PERIOD_NUMBERED = (
    "1. Wong A, Chen B. Deep models for parsing. Nat Med. 2021. "
    "2. Lee C. A survey of citation checking. Sci Rep. 2020. "
    "3. Kim D, Park E. Edit distance at scale. J Comput. 2019."
)

AUTHOR_YEAR = (
    "Smith, J. (2020). Machine learning in healthcare. Nature Medicine, 26, 309-316.\n"
    "\n"
    "Doe, A. and Roe, B. (2019). Citation errors in published papers. Journal of Documentation, 75, 1-20.\n"
    "\n"
    "Brown, C. (2018). Fuzzy matching of bibliographic records. Information Processing Review, 12, 44-60."
)


class TestNormalizeBibliographyText:
    def test_dehyphenates_line_breaks(self):
        assert "algorithm" in normalize_bibliography_text("algo-\nrithm")
        assert "algo- rithm" not in normalize_bibliography_text("algo-\nrithm")

    def test_typography(self):
        text = normalize_bibliography_text("“Quoted” – it’s fine")
        assert text == "\"Quoted\" - it's fine"

    def test_collapses_whitespace(self):
        assert normalize_bibliography_text("  a\n\n  b\t c ") == "a b c"


class TestFieldExtraction:
    def test_doi_from_url_with_trailing_period(self):
        text = "Smith (2020). Title. https://doi.org/10.1038/s41591-020-0803-x."
        assert extract_doi(text) == "10.1038/s41591-020-0803-x"

    def test_doi_with_prefix(self):
        assert extract_doi("Some paper, doi:10.1145/3292500.3330701") == "10.1145/3292500.3330701"

    def test_no_doi(self):
        assert extract_doi("Smith J. A title without identifiers. 2020.") is None

    def test_last_year_wins(self):
        assert extract_year("Smith J. Vol. 1998, pp. 12-20, published 2003.") == "2003"

    def test_year_suffix_stripped(self):
        assert extract_year("Smith, J. (2020b). Title.") == "2020"

    def test_no_year(self):
        assert extract_year("No year here, only 123 pages") == ""

    def test_arxiv_id_and_url(self):
        text = "E. Roe, Matching titles, arXiv:2101.01234v2, 2021."
        arxiv_id = extract_arxiv_id(text)
        assert arxiv_id == "2101.01234v2"
        assert "https://arxiv.org/abs/2101.01234v2" in extract_urls(text, arxiv_id)

    def test_parse_reference_text(self):
        ref = parse_reference_text(
            'A. Smith and B. Jones, "Deep learning for citation graphs", Proc. Conf., 2020.',
            citation_number=4,
            page_number=9,
            relative_index=17,
        )
        assert ref.title == "Deep learning for citation graphs"
        assert ref.authors == ["A. Smith", "B. Jones"]
        assert ref.year == "2020"
        assert ref.citation_number == 4
        assert ref.page_number == 9
        assert ref.relative_index == 17
        assert ref.id


class TestBracketedStrategy:
    strategy = BracketedStrategy()

    def test_three_entries(self):
        refs = self.strategy.extract(BRACKETED_THREE, 5)
        assert [r.citation_number for r in refs] == [1, 2, 3]
        assert refs[0].title == "Deep learning for citation graphs"
        assert refs[0].authors == ["A. Smith", "B. Jones"]
        assert refs[1].title == "Robust parsing of scanned bibliographies"
        assert refs[1].authors == ["C. Doe"]
        assert [r.year for r in refs] == ["2020", "2019", "2021"]
        assert all(r.page_number == 5 for r in refs)

    def test_arxiv_entry(self):
        refs = self.strategy.extract(BRACKETED_THREE, 1)
        assert refs[2].venue == "arXiv"
        assert "https://arxiv.org/abs/2101.01234" in refs[2].urls

    def test_relative_indexes_increase(self):
        refs = self.strategy.extract(BRACKETED_THREE, 1)
        indexes = [r.relative_index for r in refs]
        assert indexes == sorted(indexes)
        assert indexes[0] == 0


class TestTwoColumnStrategy:
    strategy = TwoColumnStrategy()

    def test_gap_tolerant_renumbering(self):
        refs = self.strategy.extract(TWO_COLUMN_GLUED, 1)
        assert [r.citation_number for r in refs] == [1, 2, 3]
        assert refs[2].raw_text.startswith("P. White")

    def test_too_few_candidates(self):
        assert self.strategy.extract("1J. Smith. Only one entry here. 2020.", 1) == []


class TestPeriodNumberedStrategy:
    strategy = PeriodNumberedStrategy()

    def test_entries(self):
        refs = self.strategy.extract(PERIOD_NUMBERED, 1)
        assert [r.citation_number for r in refs] == [1, 2, 3]
        assert [r.title for r in refs] == [
            "Deep models for parsing",
            "A survey of citation checking",
            "Edit distance at scale",
        ]
        assert refs[0].authors == ["Wong A", "Chen B"]


class TestAuthorYearStrategy:
    strategy = AuthorYearStrategy()

    def test_blank_line_separated(self):
        refs = self.strategy.extract(AUTHOR_YEAR, 1)
        assert len(refs) == 3
        assert [r.year for r in refs] == ["2020", "2019", "2018"]

    def test_indexes_point_into_normalized_text(self):
        normalized = normalize_bibliography_text(AUTHOR_YEAR)
        refs = self.strategy.extract(AUTHOR_YEAR, 1)
        for ref in refs:
            assert normalized[ref.relative_index :].startswith(ref.raw_text[:20])


class TestFallbackStrategy:
    strategy = FallbackStrategy()

    def test_parenthesised_numbers(self):
        text = (
            "1) Smith J. Parsing references from scanned documents. 2020. "
            "2) Doe A. Matching author lists across databases. 2019. "
            "3) Roe B. Detecting fabricated citations in papers. 2021."
        )
        refs = self.strategy.extract(text, 1)
        assert [r.citation_number for r in refs] == [1, 2, 3]
        assert refs[0].raw_text.startswith("Smith J.")

    def test_nothing_recognisable(self):
        assert self.strategy.extract("plain prose without any numbering", 1) == []


class TestExtractReferences:
    def test_bracketed_two_entries(self):
        refs = extract_references(BRACKETED_TWO)
        assert len(refs) == 2
        assert [r.citation_number for r in refs] == [1, 2]
        assert [r.title for r in refs] == ["A Great Title", "Another Title"]
        assert [r.year for r in refs] == ["2020", "2019"]

    def test_two_column_with_missing_number(self):
        refs = extract_references(TWO_COLUMN_GLUED)
        assert [r.citation_number for r in refs] == [1, 2, 3]

    def test_first_strategy_with_enough_entries_wins(self):
        refs = extract_references(PERIOD_NUMBERED)
        assert len(refs) == 3
        assert refs[1].title == "A survey of citation checking"

    def test_author_year(self):
        refs = extract_references(AUTHOR_YEAR)
        assert [r.citation_number for r in refs] == [1, 2, 3]

    def test_empty_text(self):
        assert extract_references("") == []
        assert extract_references("   \n ") == []

    def test_nothing_found(self):
        assert extract_references("too short") == []

    def test_start_page_propagates(self):
        refs = extract_references(BRACKETED_THREE, start_page=7)
        assert all(r.page_number == 7 for r in refs)
