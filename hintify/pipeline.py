"""Collaborator interfaces and the per-application pipeline context."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from hintify.config import Settings
from hintify.models import Provider, QuestionRecord, SaveResult
from hintify.ocr.base import OCREngine
from hintify.providers.base import LLMProvider, TTSProvider

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp", ".tif", ".tiff"}


class ImageSource(Protocol):
    def get_image(self) -> bytes | None: ...

    def get_text(self) -> str | None: ...


class ActivityLog(Protocol):
    def log(self, category: str, action: str, details: dict | None = None) -> None: ...


class HistoryStore(Protocol):
    def save(self, record: QuestionRecord) -> SaveResult: ...


class Clipboard(Protocol):
    def set_text(self, text: str) -> None: ...


class FileSource:
    """ImageSource over a file on disk: images by extension, anything else as text."""

    def __init__(self, path: Path):
        self.path = path

    def get_image(self) -> bytes | None:
        if self.path.suffix.lower() in IMAGE_SUFFIXES:
            data = self.path.read_bytes()
            return data or None
        return None

    def get_text(self) -> str | None:
        if self.path.suffix.lower() in IMAGE_SUFFIXES:
            return None
        return self.path.read_text().strip() or None


class NullActivityLog:
    def log(self, category: str, action: str, details: dict | None = None) -> None:
        pass


def build_provider(settings: Settings, transport=None) -> LLMProvider:
    provider = Provider(settings.provider)
    if provider == Provider.OLLAMA:
        from hintify.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=settings.ollama_url, model=settings.ollama_model, transport=transport)
    from hintify.providers.llm_gemini import GeminiProvider
    return GeminiProvider(
        model=settings.gemini_model, api_key=settings.resolved_gemini_key(), transport=transport,
    )


def default_ocr_engines(settings: Settings) -> list[OCREngine]:
    from hintify.ocr.bundled import BundledOCR
    from hintify.ocr.native import NativeOCR
    return [NativeOCR(), BundledOCR(model_dir=settings.ocr_model_full_path)]


@dataclass
class PipelineContext:
    """Everything one running application instance shares across processing runs."""

    settings: Settings
    save_settings: Callable[[Settings], None] = lambda s: None
    provider_factory: Callable[[Settings], LLMProvider] = build_provider
    ocr_engines: list[OCREngine] = field(default_factory=list)
    activity_log: ActivityLog = field(default_factory=NullActivityLog)
    history_store: HistoryStore | None = None
    tts: TTSProvider | None = None
    audio_cache_dir: Path | None = None
    clipboard: Clipboard | None = None
