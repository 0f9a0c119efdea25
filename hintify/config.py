from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path

from hintify.models import Provider

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

ACCOUNT_MODES = ("signed_in", "guest", "signed_out")

DEFAULTS = {
    "provider": "gemini",
    "ollama_model": "granite3.2-vision:2b",
    "gemini_model": "gemini-2.0-flash",
    # Screenshots go straight to the vision model, skipping OCR
    "advanced_mode": True,
    "story_mode": False,
    "ollama_url": "http://localhost:11434",
    "gemini_api_key": "",
    "account_mode": "signed_in",
    "tts_voice": "en-US-GuyNeural",
    "db_path": "history.db",
    "audio_cache_dir": "audio_cache",
    "ocr_model_dir": "assets/easyocr",
}


@dataclass
class Settings:
    provider: str = DEFAULTS["provider"]
    ollama_model: str = DEFAULTS["ollama_model"]
    gemini_model: str = DEFAULTS["gemini_model"]
    advanced_mode: bool = DEFAULTS["advanced_mode"]
    story_mode: bool = DEFAULTS["story_mode"]
    ollama_url: str = DEFAULTS["ollama_url"]
    gemini_api_key: str = DEFAULTS["gemini_api_key"]
    account_mode: str = DEFAULTS["account_mode"]
    tts_voice: str = DEFAULTS["tts_voice"]
    db_path: str = DEFAULTS["db_path"]
    audio_cache_dir: str = DEFAULTS["audio_cache_dir"]
    ocr_model_dir: str = DEFAULTS["ocr_model_dir"]

    def __post_init__(self):
        try:
            Provider(self.provider)
        except ValueError:
            raise ValueError(
                f"Unknown provider {self.provider!r}; expected one of "
                f"{', '.join(p.value for p in Provider)}"
            ) from None
        if self.account_mode not in ACCOUNT_MODES:
            raise ValueError(f"Unknown account_mode {self.account_mode!r}")
        for flag in ("advanced_mode", "story_mode"):
            if not isinstance(getattr(self, flag), bool):
                raise ValueError(f"{flag} must be true or false, got {getattr(self, flag)!r}")

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    @property
    def audio_cache_full_path(self) -> Path:
        return self.project_root / self.audio_cache_dir

    @property
    def ocr_model_full_path(self) -> Path:
        return self.project_root / self.ocr_model_dir

    @property
    def active_model(self) -> str:
        return self.ollama_model if self.provider == Provider.OLLAMA.value else self.gemini_model

    def resolved_gemini_key(self) -> str:
        return self.gemini_api_key or os.environ.get("GEMINI_API_KEY", "")

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in fields(Settings)}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
