"""Turn a captured image or text into a rendered, non-spoiling hint sequence.

One processing run at a time: a second request while busy is rejected, not
queued. Every run works on a snapshot of the settings taken when it starts.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from hintify.actions import flatten_hints
from hintify.classifier import classify
from hintify.config import Settings
from hintify.models import (
    ERROR_PREFIX,
    OCR_ERROR_PREFIX,
    Classification,
    Difficulty,
    ErrorKind,
    ImageInput,
    PromptContext,
    PromptMode,
    ProcessingResult,
    ProviderResponse,
    QuestionRecord,
    QuestionType,
    TextInput,
    is_sentinel,
)
from hintify.ocr.base import OCREngine, OCREngineStartError, OCRError, OCRProgress, select_engine
from hintify.parsers.hint_parser import RenderedHints, render
from hintify.policy import fallback_once
from hintify.prompts import build_prompt

if TYPE_CHECKING:
    from hintify.models import CaptureInput
    from hintify.pipeline import ImageSource, PipelineContext

_log = logging.getLogger("hintify.pipeline")

ALREADY_PROCESSING = "Already processing..."
NOTHING_TO_REGENERATE = "Nothing to regenerate"
CLIPBOARD_EMPTY = (
    "⚠️ Clipboard does not contain an image or text. Copy a question or screenshot, "
    "then press Cmd/Ctrl+Shift+V."
)
NO_TEXT_FOUND = f"{OCR_ERROR_PREFIX} No text found in the image."
SCREENSHOT_PLACEHOLDER = "[Screenshot input]"


class State(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    EXTRACTING = "extracting"
    DIRECT = "direct"
    CLASSIFYING = "classifying"
    PROMPTING = "prompting"
    QUERYING = "querying"
    RENDERING = "rendering"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(t0: float) -> int:
    return int((time.monotonic() - t0) * 1000)


def _classification_from_metadata(metadata: dict) -> Classification:
    try:
        qtype = QuestionType(metadata.get("question_type", "text"))
    except ValueError:
        qtype = QuestionType.UNKNOWN
    try:
        difficulty = Difficulty(metadata.get("difficulty", "Medium"))
    except ValueError:
        difficulty = Difficulty.MEDIUM
    return Classification(qtype, difficulty)


class CaptureProcessor:
    def __init__(self, context: PipelineContext):
        self.context = context
        self.state = State.IDLE
        self.status = "Ready"
        self.last_record: QuestionRecord | None = None
        self.last_rendered: RenderedHints | None = None
        self._busy = False
        self._run = 0

    @property
    def busy(self) -> bool:
        return self._busy

    # ── Activity ──────────────────────────────────────────────────────────

    def _emit(self, category: str, action: str, details: dict | None = None) -> None:
        try:
            self.context.activity_log.log(category, action, details)
        except Exception as e:
            _log.warning("Activity log failed (%s.%s): %s", category, action, e)

    def _transition(self, state: State) -> None:
        self.state = state
        self._emit("pipeline", state.value, {"run": self._run})

    # ── Entry points ──────────────────────────────────────────────────────

    def _reject_busy(self) -> ProcessingResult:
        self.status = ALREADY_PROCESSING
        return ProcessingResult(status="busy", message=ALREADY_PROCESSING)

    async def process(self, capture: CaptureInput) -> ProcessingResult:
        if self._busy:
            return self._reject_busy()
        self._busy = True
        self._run += 1
        settings = replace(self.context.settings)
        t0 = time.monotonic()
        category = "image_processing" if isinstance(capture, ImageInput) else "text_processing"
        try:
            self._transition(State.CAPTURING)
            if isinstance(capture, ImageInput):
                return await self._process_image(capture.data, settings, t0)
            return await self._process_text(capture.content, settings, t0)
        except Exception as e:
            _log.exception("Processing error")
            self._emit(category, "failed", {"error": str(e), "processing_time_ms": _elapsed_ms(t0)})
            self.status = "Error occurred"
            response = ProviderResponse(f"{ERROR_PREFIX} {e}", ErrorKind.PROVIDER_ERROR)
            self.last_rendered = render(response.raw_text)
            self.last_record = None
            return ProcessingResult(status="failed", response=response, message=response.raw_text)
        finally:
            self._busy = False
            self._transition(State.IDLE)

    async def process_source(self, source: ImageSource) -> ProcessingResult:
        """Image first, then text, from a clipboard-like source."""
        if self._busy:
            return self._reject_busy()
        try:
            image = source.get_image()
            text = None if image else (source.get_text() or "").strip()
        except Exception as e:
            _log.error("Clipboard read error: %s", e)
            message = f"{ERROR_PREFIX} Clipboard read failed: {e}"
            return ProcessingResult(status="failed", message=message)

        if image:
            self._emit("clipboard", "image_found", {"image_size": len(image)})
            return await self.process(ImageInput(image))
        if text:
            self._emit("clipboard", "text_found", {"length": len(text)})
            return await self.process(TextInput(text))
        self.status = "Clipboard empty"
        self._emit("clipboard", "empty")
        return ProcessingResult(status="empty", message=CLIPBOARD_EMPTY)

    async def regenerate(self) -> ProcessingResult:
        """Ask for a fresh, more thorough hint set for the last question."""
        if self._busy:
            return self._reject_busy()
        record = self.last_record
        shown = self.last_rendered
        # Only the hint set currently on screen can be regenerated
        if record is None or shown is None or not shown.has_actions or is_sentinel(record.answer_text):
            self.status = NOTHING_TO_REGENERATE
            return ProcessingResult(status="empty", message=NOTHING_TO_REGENERATE)

        self._busy = True
        self._run += 1
        settings = replace(self.context.settings)
        t0 = time.monotonic()
        try:
            self.status = "Regenerating..."
            self._transition(State.PROMPTING)
            with_image = record.question_type == "image_direct" and record.image_data
            source = "See the attached screenshot." if with_image else record.question_text
            prompt = build_prompt(
                PromptContext(
                    source_text=source,
                    classification=_classification_from_metadata(record.metadata),
                    mode=PromptMode.REGENERATION,
                    previous_hints=record.answer_text,
                ),
                settings.story_mode,
            )
            self._transition(State.QUERYING)
            provider = self.context.provider_factory(settings)
            if with_image:
                response = await provider.generate_with_image(prompt, record.image_data)
            else:
                response = await provider.generate(prompt)

            self._transition(State.RENDERING)
            rendered = render(response.raw_text)
            if response.is_error:
                self._emit("hints", "regeneration_failed", {"error": response.raw_text})
                self.status = "Regeneration failed"
                return ProcessingResult(
                    status="failed", record=record, response=response, message=response.raw_text,
                )

            new_record = replace(
                record,
                answer_text=response.raw_text,
                metadata={
                    **record.metadata,
                    "regenerated": True,
                    "previous_hints_length": len(flatten_hints(shown.blocks)),
                },
                processing_time_ms=_elapsed_ms(t0),
            )
            self.last_record = new_record
            self.last_rendered = rendered
            self._emit("hints", "regenerated", {
                "hints_length": len(response.raw_text),
                "processing_time_ms": new_record.processing_time_ms,
            })
            self.status = "Ready"
            return ProcessingResult(
                status="ok", record=new_record, response=response, blocks=rendered.blocks,
            )
        except Exception as e:
            _log.exception("Regeneration error")
            self.status = "Error occurred"
            response = ProviderResponse(f"{ERROR_PREFIX} {e}", ErrorKind.PROVIDER_ERROR)
            self._emit("hints", "regeneration_failed", {"error": response.raw_text})
            return ProcessingResult(status="failed", record=record, response=response, message=response.raw_text)
        finally:
            self._busy = False
            self._transition(State.IDLE)

    # ── Image path ────────────────────────────────────────────────────────

    async def _process_image(self, data: bytes, settings: Settings, t0: float) -> ProcessingResult:
        self._emit("image_processing", "started", {"image_size": len(data), "timestamp": _timestamp()})
        if settings.advanced_mode:
            return await self._run_direct(data, settings, t0)

        engine = await select_engine(self.context.ocr_engines)
        if engine is None:
            _log.info("No OCR engine available, sending image directly")
            return await self._run_direct(data, settings, t0)

        return await fallback_once(
            lambda: self._run_ocr(engine, data, settings, t0),
            lambda: self._switch_to_direct(data, settings, t0),
            lambda e: isinstance(e, OCREngineStartError),
        )

    async def _consume_progress(self, channel: asyncio.Queue) -> None:
        while True:
            event: OCRProgress | None = await channel.get()
            if event is None:
                return
            self.status = f"OCR Progress: {event.percent}%"

    async def _run_ocr(self, engine: OCREngine, data: bytes, settings: Settings, t0: float) -> ProcessingResult:
        self._transition(State.EXTRACTING)
        self.status = "Extracting text from image..."
        channel: asyncio.Queue = asyncio.Queue()
        consumer = asyncio.create_task(self._consume_progress(channel))
        try:
            text = await engine.recognize(data, channel)
        except OCREngineStartError:
            raise
        except OCRError as e:
            return self._ocr_failed(f"{OCR_ERROR_PREFIX} {e}", t0)
        finally:
            channel.put_nowait(None)
            await consumer

        if not text or not text.strip():
            return self._ocr_failed(NO_TEXT_FOUND, t0)

        self._emit("ocr", "completed", {"text_length": len(text), "processing_time_ms": _elapsed_ms(t0)})
        return await self._query_text(
            text, settings, t0, question_type="image_ocr", image=data, category="image_processing",
        )

    def _ocr_failed(self, message: str, t0: float) -> ProcessingResult:
        self._emit("ocr", "failed", {"error": message, "processing_time_ms": _elapsed_ms(t0)})
        self.status = "OCR failed"
        self.last_rendered = render(message)
        self.last_record = None
        return ProcessingResult(status="failed", message=message)

    async def _switch_to_direct(self, data: bytes, settings: Settings, t0: float) -> ProcessingResult:
        self.status = "OCR unavailable. Switching to Advanced Mode..."
        self._emit("ocr", "auto_switch", {"advanced_mode": True})
        self.context.settings.advanced_mode = True
        try:
            self.context.save_settings(self.context.settings)
        except Exception as e:
            _log.warning("Could not persist Advanced Mode switch: %s", e)
        return await self._run_direct(data, replace(settings, advanced_mode=True), t0)

    async def _run_direct(self, data: bytes, settings: Settings, t0: float) -> ProcessingResult:
        self._transition(State.DIRECT)
        self.status = "Generating hints (Advanced Mode)..."
        self._transition(State.PROMPTING)
        prompt = build_prompt(
            PromptContext(source_text=None, classification=None, mode=PromptMode.IMAGE_DIRECT),
            settings.story_mode,
        )
        self._transition(State.QUERYING)
        provider = self.context.provider_factory(settings)
        response = await provider.generate_with_image(prompt, data)
        record = QuestionRecord(
            question_text=SCREENSHOT_PLACEHOLDER,
            answer_text=response.raw_text,
            question_type="image_direct",
            image_data=data,
            metadata={
                "difficulty": Difficulty.UNKNOWN.value,
                "question_type": QuestionType.UNKNOWN.value,
                "source": "advanced_mode_image",
                "ai_provider": settings.provider,
                "ai_model": settings.active_model,
                "timestamp": _timestamp(),
            },
            processing_time_ms=_elapsed_ms(t0),
        )
        return self._complete(record, response, settings, "image_processing", {
            "question_type": "image_direct",
            "difficulty": Difficulty.UNKNOWN.value,
            "ocr_skipped": True,
        })

    # ── Text path ─────────────────────────────────────────────────────────

    async def _process_text(self, text: str, settings: Settings, t0: float) -> ProcessingResult:
        text = text.strip()
        if not text:
            self.status = "Clipboard empty"
            return ProcessingResult(status="empty", message=CLIPBOARD_EMPTY)
        return await self._query_text(
            text, settings, t0, question_type="text", image=None, category="text_processing",
        )

    async def _query_text(
        self,
        text: str,
        settings: Settings,
        t0: float,
        question_type: str,
        image: bytes | None,
        category: str,
    ) -> ProcessingResult:
        self._transition(State.CLASSIFYING)
        classification = classify(text)
        qtype, difficulty = classification.question_type.value, classification.difficulty.value
        self.status = f"Generating hints... ({qtype}, {difficulty})"

        self._transition(State.PROMPTING)
        prompt = build_prompt(
            PromptContext(source_text=text, classification=classification, mode=PromptMode.STANDARD),
            settings.story_mode,
        )
        self._transition(State.QUERYING)
        provider = self.context.provider_factory(settings)
        response = await provider.generate(prompt)

        record = QuestionRecord(
            question_text=text,
            answer_text=response.raw_text,
            question_type=question_type,
            image_data=image,
            metadata={
                "difficulty": difficulty,
                "question_type": qtype,
                "ai_provider": settings.provider,
                "ai_model": settings.active_model,
                "story_mode": settings.story_mode,
                "timestamp": _timestamp(),
            },
            processing_time_ms=_elapsed_ms(t0),
        )
        return self._complete(record, response, settings, category, {
            "question_type": qtype,
            "difficulty": difficulty,
            "text_length": len(text),
        })

    # ── Completion ────────────────────────────────────────────────────────

    def _complete(
        self,
        record: QuestionRecord,
        response: ProviderResponse,
        settings: Settings,
        category: str,
        details: dict,
    ) -> ProcessingResult:
        self._transition(State.RENDERING)
        rendered = render(response.raw_text)
        self.last_record = record
        self.last_rendered = rendered
        if not response.is_error:
            self._auto_save(record, settings)
        self._emit(category, "completed", {
            **details,
            "hints_length": len(response.raw_text),
            "total_processing_time_ms": record.processing_time_ms,
        })
        self.status = "Ready"
        return ProcessingResult(status="ok", record=record, response=response, blocks=rendered.blocks)

    def _auto_save(self, record: QuestionRecord, settings: Settings) -> None:
        if settings.account_mode == "guest":
            _log.info("Guest mode: Q&A would be saved if signed in (%s)", record.question_type)
            return
        store = self.context.history_store
        if settings.account_mode != "signed_in" or store is None:
            return
        try:
            result = store.save(record)
        except Exception as e:
            _log.error("Error saving Q&A: %s", e)
            return
        if result.success:
            self._emit("question_answer", "saved", {
                "question_id": result.id,
                "question_type": record.question_type,
                "ai_provider": settings.provider,
            })
        else:
            _log.error("Failed to save Q&A: %s", result.error)
