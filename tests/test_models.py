"""Tests for data models and the sentinel convention."""
from __future__ import annotations

import pytest

from hintify.models import (
    ErrorKind,
    ProcessingResult,
    ProviderResponse,
    QuestionRecord,
    is_sentinel,
)


class TestIsSentinel:
    @pytest.mark.parametrize("text", [
        "[Setup] Ollama not running. Please start Ollama first.",
        "[LLM Error] boom",
        "[OCR Error] No text found in the image.",
        "[Error] disk full",
        "  [anything bracketed",
        "Provider Error: quota",
        "",
        "   ",
        None,
    ])
    def test_sentinels(self, text):
        assert is_sentinel(text)

    @pytest.mark.parametrize("text", [
        "Hint 1: Isolate x",
        "**Story:** a boat\n**Concept:** buoyancy",
        "Consider the error term in the series.",  # lowercase is real content
    ])
    def test_real_content(self, text):
        assert not is_sentinel(text)


class TestProviderResponse:
    def test_ok(self):
        r = ProviderResponse.ok("Hint 1: a")
        assert not r.is_error
        assert r.error_kind == ErrorKind.NONE

    def test_setup(self):
        r = ProviderResponse.setup("Gemini API key not set.")
        assert r.raw_text == "[Setup] Gemini API key not set."
        assert r.is_error
        assert r.error_kind == ErrorKind.NOT_CONFIGURED

    def test_llm_error(self):
        r = ProviderResponse.llm_error("timeout", ErrorKind.CONNECTION_REFUSED)
        assert r.raw_text == "[LLM Error] timeout"
        assert r.is_transport_failure


class TestProcessingResult:
    def test_display_text_prefers_response(self):
        result = ProcessingResult(status="ok", response=ProviderResponse.ok("Hint 1: a"), message="ignored")
        assert result.display_text == "Hint 1: a"

    def test_display_text_falls_back_to_message(self):
        assert ProcessingResult(status="busy", message="Already processing...").display_text == "Already processing..."


class TestQuestionRecord:
    def test_defaults(self):
        record = QuestionRecord(question_text="q", answer_text="a", question_type="text")
        assert record.image_data is None
        assert record.metadata == {}
        assert record.processing_time_ms is None

    def test_frozen(self):
        record = QuestionRecord(question_text="q", answer_text="a", question_type="text")
        with pytest.raises(AttributeError):
            record.answer_text = "b"
