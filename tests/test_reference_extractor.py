"""Tests for LLM-based reference extraction with a fake Ollama client."""

import asyncio

import pytest

from reference_validator.models import LLMReference, LLMReferenceList
from reference_validator.reference_extractor import OllamaReferenceExtractor, split_into_batches


class FakeOllama:
    """Returns one canned LLMReferenceList per call and records the prompts."""

    def __init__(self, replies=None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.prompts = []

    async def chat_structured(self, prompt, response_model, system_prompt=""):
        self.prompts.append(prompt)
        assert response_model is LLMReferenceList
        if self.error:
            raise self.error
        return self.replies.pop(0)


class TestSplitIntoBatches:
    def test_small_text_is_one_batch(self):
        assert split_into_batches("[1] A.\n[2] B.") == ["[1] A.\n[2] B."]

    def test_splits_on_line_boundaries(self):
        text = "\n".join(f"[{i}] Entry number {i}." for i in range(1, 7))
        batches = split_into_batches(text, chars_per_batch=40)
        assert len(batches) > 1
        assert "\n".join(batches) == text
        assert all(len(b) <= 40 for b in batches)

    def test_blank_text(self):
        assert split_into_batches("  \n ") == []


class TestOllamaReferenceExtractor:
    def test_batches_are_renumbered(self):
        client = FakeOllama(
            replies=[
                LLMReferenceList(references=[LLMReference(title="First paper", raw_text="[1] First paper")]),
                LLMReferenceList(references=[LLMReference(title="Second paper", raw_text="[2] Second paper")]),
            ]
        )
        text = "[1] A. Smith. First paper. 2020.\n[2] B. Jones. Second paper. 2021."
        refs = asyncio.run(OllamaReferenceExtractor(client, chars_per_batch=35).extract(text))
        assert [r.title for r in refs] == ["First paper", "Second paper"]
        assert [r.citation_number for r in refs] == [1, 2]
        assert len(client.prompts) == 2
        assert "[1] A. Smith. First paper. 2020." in client.prompts[0]
        assert "[2] B. Jones. Second paper. 2021." in client.prompts[1]

    def test_missing_raw_text_is_rebuilt(self):
        entry = LLMReference(title="Citation graphs", authors=["Roe, B."], venue="J. Doc. Eng.", year=2019)
        client = FakeOllama(replies=[LLMReferenceList(references=[entry])])
        [ref] = asyncio.run(OllamaReferenceExtractor(client).extract("[1] Roe, B. Citation graphs."))
        assert ref.raw_text == "Roe, B.. Citation graphs. J. Doc. Eng.. 2019"
        assert ref.year == "2019"
        assert ref.page_number is None

    def test_empty_entries_dropped(self):
        client = FakeOllama(replies=[LLMReferenceList(references=[LLMReference(), LLMReference(title="Kept")])])
        refs = asyncio.run(OllamaReferenceExtractor(client).extract("[1] Kept."))
        assert [r.title for r in refs] == ["Kept"]
        assert refs[0].citation_number == 1

    def test_ids_are_unique(self):
        entries = [LLMReference(title="Same title"), LLMReference(title="Same title")]
        client = FakeOllama(replies=[LLMReferenceList(references=entries)])
        refs = asyncio.run(OllamaReferenceExtractor(client).extract("[1] x\n[2] x"))
        assert refs[0].id != refs[1].id

    def test_errors_propagate(self):
        client = FakeOllama(error=ConnectionError("Ollama is not running"))
        with pytest.raises(ConnectionError):
            asyncio.run(OllamaReferenceExtractor(client).extract("[1] A paper."))


class TestLLMReferenceCoercion:
    def test_loose_json(self):
        result = LLMReferenceList.model_validate_json(
            '{"references": [{"title": "T", "authors": "Roe, B.", "year": 2019, "doi": "", "urls": null}]}'
        )
        [entry] = result.references
        assert entry.authors == ["Roe, B."]
        assert entry.year == "2019"
        assert entry.doi is None
        assert entry.urls == []
