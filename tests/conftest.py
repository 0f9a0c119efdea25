"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from hintify.config import Settings
from hintify.db import Database
from hintify.models import ProviderResponse, SaveResult
from hintify.ocr.base import OCREngine, report
from hintify.pipeline import PipelineContext
from hintify.processor import CaptureProcessor
from hintify.providers.base import LLMProvider, TTSProvider

SCENARIO_QUESTION = "Solve for x: 2x+4=10 (A) 1 (B) 2 (C) 3 (D) 4"
SCENARIO_HINTS = "Hint 1: Isolate x\nHint 2: Divide both sides\nNow try completing the final step on your own."


class FakeLLM(LLMProvider):
    """Returns canned responses and records every prompt it was given."""

    def __init__(self, text: str = SCENARIO_HINTS, gate: asyncio.Event | None = None):
        self.text = text
        self.gate = gate
        self.prompts: list[str] = []
        self.images: list[bytes] = []
        self.warning: str | None = None

    async def _respond(self) -> ProviderResponse:
        if self.gate is not None:
            await self.gate.wait()
        return ProviderResponse(self.text)

    async def generate(self, prompt: str) -> ProviderResponse:
        self.prompts.append(prompt)
        return await self._respond()

    async def generate_with_image(self, prompt: str, image: bytes) -> ProviderResponse:
        self.prompts.append(prompt)
        self.images.append(image)
        return await self._respond()

    async def check_status(self) -> str | None:
        return self.warning

    def name(self) -> str:
        return "fake-llm"


class FakeOCR(OCREngine):
    def __init__(self, text: str = SCENARIO_QUESTION, available: bool = True, error: Exception | None = None):
        self.text = text
        self.available = available
        self.error = error
        self.calls = 0

    async def is_available(self) -> bool:
        return self.available

    async def recognize(self, image: bytes, progress=None) -> str:
        self.calls += 1
        report(progress, 50)
        if self.error is not None:
            raise self.error
        report(progress, 100)
        return self.text

    def name(self) -> str:
        return "fake-ocr"


class FakeTTS(TTSProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []

    async def synthesize(self, text: str, output_path: Path) -> Path:
        self.calls.append(text)
        if self.fail:
            output_path.write_bytes(b"partial")
            raise RuntimeError("voice unavailable")
        output_path.write_bytes(b"ID3fake-mp3")
        return output_path

    def name(self) -> str:
        return "fake-tts"


class RecordingLog:
    def __init__(self):
        self.entries: list[tuple[str, str, dict | None]] = []

    def log(self, category: str, action: str, details: dict | None = None) -> None:
        self.entries.append((category, action, details))

    def events(self, skip_pipeline: bool = True) -> list[str]:
        return [f"{c}.{a}" for c, a, _ in self.entries if not (skip_pipeline and c == "pipeline")]


class RecordingStore:
    def __init__(self):
        self.saved = []

    def save(self, record) -> SaveResult:
        self.saved.append(record)
        return SaveResult(success=True, id=f"q-{len(self.saved)}")


class RecordingClipboard:
    def __init__(self):
        self.text: str | None = None

    def set_text(self, text: str) -> None:
        self.text = text


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        advanced_mode=False,
        gemini_api_key="test-key",
        db_path=str(tmp_path / "test.db"),
        audio_cache_dir=str(tmp_path / "audio"),
    )


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def activity():
    return RecordingLog()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def saved_settings():
    """Every settings object handed to the context's saver."""
    return []


@pytest.fixture
def context(settings, fake_llm, activity, store, saved_settings, tmp_path):
    return PipelineContext(
        settings=settings,
        save_settings=lambda s: saved_settings.append(s.to_dict()),
        provider_factory=lambda s: fake_llm,
        ocr_engines=[FakeOCR()],
        activity_log=activity,
        history_store=store,
        tts=FakeTTS(),
        audio_cache_dir=tmp_path / "audio",
        clipboard=RecordingClipboard(),
    )


@pytest.fixture
def processor(context):
    return CaptureProcessor(context)
