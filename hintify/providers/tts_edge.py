from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from hintify.providers.base import TTSProvider

if TYPE_CHECKING:
    from hintify.config import Settings


class EdgeTTSProvider(TTSProvider):
    """Reads hints aloud through Microsoft Edge's online voices."""

    def __init__(self, voice: str):
        self.voice = voice

    @classmethod
    def from_settings(cls, settings: Settings) -> EdgeTTSProvider:
        return cls(settings.tts_voice)

    async def synthesize(self, text: str, output_path: Path) -> Path:
        import edge_tts

        await edge_tts.Communicate(text, self.voice).save(str(output_path))
        return output_path

    def name(self) -> str:
        return f"edge-tts/{self.voice}"
