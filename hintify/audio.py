"""TTS audio caching for the speak action."""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hintify.providers.base import TTSProvider

log = logging.getLogger("hintify.audio")


def sentence_hash(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()[:16]


def cached_audio_path(cache_dir: Path, audio_hash: str) -> Path:
    return cache_dir / f"{audio_hash}.mp3"


async def get_or_create_audio(text: str, tts: TTSProvider, cache_dir: Path) -> Path | None:
    """Get cached audio for *text* or synthesize it; None when TTS fails."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    output_path = cached_audio_path(cache_dir, sentence_hash(text))
    if output_path.exists():
        return output_path
    try:
        await tts.synthesize(text, output_path)
    except Exception as e:
        log.warning("TTS error (%s): %s", tts.name(), e)
        output_path.unlink(missing_ok=True)
        return None
    return output_path
