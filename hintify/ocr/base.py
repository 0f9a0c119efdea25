from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

log = logging.getLogger("hintify.ocr")


class OCRError(Exception):
    """Recognition failed; terminal for the current request."""


class OCREngineStartError(OCRError):
    """The engine itself could not start (missing binary, runtime/worker failure)."""


@dataclass(frozen=True)
class OCRProgress:
    percent: int
    status: str = "recognizing text"


ProgressChannel = asyncio.Queue  # of OCRProgress


def report(channel: ProgressChannel | None, percent: float, status: str = "recognizing text") -> None:
    if channel is not None:
        channel.put_nowait(OCRProgress(max(0, min(100, round(percent))), status))


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


class OCREngine(ABC):
    @abstractmethod
    async def is_available(self) -> bool:
        ...

    @abstractmethod
    async def recognize(self, image: bytes, progress: ProgressChannel | None = None) -> str:
        ...

    @abstractmethod
    def name(self) -> str:
        ...


async def select_engine(engines: Sequence[OCREngine]) -> OCREngine | None:
    """Return the first available engine, probing in order on every call."""
    for engine in engines:
        if await engine.is_available():
            log.info("Using OCR engine: %s", engine.name())
            return engine
        log.info("OCR engine %s unavailable", engine.name())
    return None
