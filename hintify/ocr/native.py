from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from hintify.ocr.base import (
    OCREngine,
    OCREngineStartError,
    OCRError,
    ProgressChannel,
    log,
    normalize_whitespace,
    report,
)


@contextmanager
def temp_image(data: bytes, suffix: str = ".png") -> Iterator[Path]:
    """Write *data* to a temp file that is removed however the block exits."""
    fd, name = tempfile.mkstemp(prefix="hintify_", suffix=suffix)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("Failed to clean up temp file %s: %s", path, e)


class NativeOCR(OCREngine):
    """System ``tesseract`` binary run in a child process."""

    def __init__(self, binary: str = "tesseract"):
        self.binary = binary

    async def is_available(self) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary, "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError:
            return False
        await proc.communicate()
        return proc.returncode == 0

    async def recognize(self, image: bytes, progress: ProgressChannel | None = None) -> str:
        report(progress, 0)
        with temp_image(image) as path:
            try:
                proc = await asyncio.create_subprocess_exec(
                    self.binary, str(path), "stdout",
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise OCREngineStartError(f"{self.binary} not found") from e
            stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise OCRError(f"Tesseract failed: {detail or 'Unknown error'}")
        report(progress, 100)
        return normalize_whitespace(stdout.decode(errors="replace"))

    def name(self) -> str:
        return f"native/{self.binary}"
