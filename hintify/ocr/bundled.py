from __future__ import annotations

import asyncio
import importlib.util
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

# Detection + English recognition weights shipped in a local model bundle.
BUNDLE_FILES = ("craft_mlt_25k.pth", "english_g2.pth")

START_FAILURE = (
    "OCR engine could not start in this environment. You can enable Advanced Mode "
    "to send images directly to the AI without OCR."
)


class BundledOCR(OCREngine):
    """In-process EasyOCR recognizer, used when no system tesseract is installed."""

    def __init__(self, languages: tuple[str, ...] = ("en",), model_dir: Path | None = None):
        self.languages = list(languages)
        self.model_dir = model_dir
        self._reader = None

    def _local_bundle(self) -> Path | None:
        if self.model_dir and all((self.model_dir / f).exists() for f in BUNDLE_FILES):
            return self.model_dir
        return None

    def _create_reader(self):
        import easyocr

        bundle = self._local_bundle()
        if bundle is not None:
            log.info("EasyOCR: using local model bundle %s", bundle)
            return easyocr.Reader(
                self.languages, gpu=False,
                model_storage_directory=str(bundle), download_enabled=False,
            )
        log.info("EasyOCR: no local model bundle, using default download")
        return easyocr.Reader(self.languages, gpu=False)

    async def _get_reader(self):
        if self._reader is None:
            try:
                self._reader = await asyncio.to_thread(self._create_reader)
            except Exception as e:
                log.warning("EasyOCR failed to start: %s", e)
                raise OCREngineStartError(START_FAILURE) from e
        return self._reader

    def _prepare(self, image: bytes):
        from easyocr.utils import reformat_input

        return reformat_input(image)

    async def is_available(self) -> bool:
        return importlib.util.find_spec("easyocr") is not None

    async def recognize(self, image: bytes, progress: ProgressChannel | None = None) -> str:
        report(progress, 0, "loading engine")
        reader = await self._get_reader()
        try:
            img, img_grey = self._prepare(image)
            horizontal, free = await asyncio.to_thread(reader.detect, img)
            boxes_h, boxes_f = horizontal[0], free[0]
            report(progress, 10)

            total = len(boxes_h) + len(boxes_f)
            texts: list[str] = []
            done = 0
            for box in boxes_h:
                texts += await asyncio.to_thread(
                    reader.recognize, img_grey, horizontal_list=[box], free_list=[], detail=0,
                )
                done += 1
                report(progress, 10 + 90 * done / total)
            for box in boxes_f:
                texts += await asyncio.to_thread(
                    reader.recognize, img_grey, horizontal_list=[], free_list=[box], detail=0,
                )
                done += 1
                report(progress, 10 + 90 * done / total)
        except Exception as e:
            raise OCRError(f"Fallback OCR failed: {e}") from e
        report(progress, 100)
        return normalize_whitespace(" ".join(texts))

    def name(self) -> str:
        return "bundled/easyocr"
