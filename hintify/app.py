"""FastAPI application exposing the hint pipeline as a local service."""
from __future__ import annotations

import logging
from dataclasses import fields

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse

from hintify.actions import FEEDBACK_ACTIONS, SHARE_TARGETS, HintActions
from hintify.audio import cached_audio_path
from hintify.config import Settings, load_settings, save_settings
from hintify.db import Database
from hintify.models import Encouragement, Hint, ImageInput, ProcessingResult, TextInput
from hintify.ocr.base import select_engine
from hintify.parsers.hint_parser import render
from hintify.pipeline import NullActivityLog, PipelineContext, default_ocr_engines
from hintify.processor import CaptureProcessor

log = logging.getLogger("hintify.app")

app = FastAPI(title="Hintify")

# Global state (initialized in startup)
_db: Database | None = None
_context: PipelineContext | None = None
_processor: CaptureProcessor | None = None
_actions: HintActions | None = None


def get_context() -> PipelineContext:
    assert _context is not None
    return _context


def get_processor() -> CaptureProcessor:
    assert _processor is not None
    return _processor


def get_actions() -> HintActions:
    assert _actions is not None
    return _actions


def _save_settings(settings: Settings) -> None:
    save_settings(settings)


def build_context(settings: Settings, db: Database | None) -> PipelineContext:
    from hintify.providers.tts_edge import EdgeTTSProvider

    return PipelineContext(
        settings=settings,
        save_settings=_save_settings,
        ocr_engines=default_ocr_engines(settings),
        activity_log=db if db is not None else NullActivityLog(),
        history_store=db,
        tts=EdgeTTSProvider.from_settings(settings),
        audio_cache_dir=settings.audio_cache_full_path,
    )


def install(context: PipelineContext) -> None:
    global _context, _processor, _actions
    _context = context
    _processor = CaptureProcessor(context)
    _actions = HintActions(context, _processor)


@app.on_event("startup")
async def startup():
    global _db
    if _context is not None:
        return  # Already initialized (e.g. by tests)
    settings = load_settings()
    _db = Database(settings.db_full_path)
    install(build_context(settings, _db))
    log.info("Hintify ready (provider=%s, model=%s)", settings.provider, settings.active_model)


@app.on_event("shutdown")
async def shutdown():
    if _db:
        _db.close()


# ── Serialization ─────────────────────────────────────────────────────────

def _block_to_dict(block) -> dict:
    if isinstance(block, Hint):
        return {"kind": "hint", "label": block.label, "text": block.text}
    if isinstance(block, Encouragement):
        return {"kind": "encouragement", "label": None, "text": block.text}
    return {"kind": "plain", "label": None, "text": block.text}


def _result_payload(result: ProcessingResult) -> dict:
    record = result.record
    response = result.response
    is_error = bool(response and response.is_error) or result.status == "failed"
    return {
        "status": result.status,
        "text": result.display_text,
        "is_error": is_error,
        "error_kind": response.error_kind.value if response else None,
        "error": render(result.display_text).error if is_error else None,
        "blocks": [_block_to_dict(b) for b in result.blocks],
        "record": {
            "question_text": record.question_text,
            "question_type": record.question_type,
            "metadata": record.metadata,
            "processing_time_ms": record.processing_time_ms,
        } if record else None,
        "status_text": get_processor().status,
    }


def _checked(result: ProcessingResult) -> dict:
    if result.status == "busy":
        raise HTTPException(409, result.message)
    return _result_payload(result)


def _current_hints():
    processor = get_processor()
    rendered = processor.last_rendered
    if rendered is None or not rendered.has_actions:
        raise HTTPException(400, "No hints to act on")
    return rendered.blocks, processor.last_record


# ── API: Status ───────────────────────────────────────────────────────────

@app.get("/api/status")
async def api_status():
    context = get_context()
    settings = context.settings
    provider = context.provider_factory(settings)
    warning = await provider.check_status()
    engine = None
    if not settings.advanced_mode:
        engine = await select_engine(context.ocr_engines)
    processor = get_processor()
    return {
        "provider": settings.provider,
        "model": settings.active_model,
        "provider_ready": warning is None,
        "provider_warning": warning,
        "advanced_mode": settings.advanced_mode,
        "ocr_engine": engine.name() if engine else None,
        "busy": processor.busy,
        "state": processor.state.value,
        "status_text": processor.status,
    }


# ── API: Capture ──────────────────────────────────────────────────────────

@app.post("/api/capture/image")
async def api_capture_image(request: Request):
    data = await request.body()
    if not data:
        raise HTTPException(400, "No image data provided")
    return _checked(await get_processor().process(ImageInput(data)))


@app.post("/api/capture/text")
async def api_capture_text(request: Request):
    body = await request.json()
    text = (body.get("text") or "").strip()
    if not text:
        raise HTTPException(400, "No text provided")
    return _checked(await get_processor().process(TextInput(text)))


@app.post("/api/regenerate")
async def api_regenerate():
    return _checked(await get_actions().regenerate())


# ── API: Actions ──────────────────────────────────────────────────────────

@app.post("/api/actions/copy")
async def api_copy():
    blocks, record = _current_hints()
    return {"text": get_actions().copy(blocks, record)}


@app.post("/api/actions/speak")
async def api_speak():
    blocks, record = _current_hints()
    path = await get_actions().speak(blocks, record)
    if path is None:
        raise HTTPException(500, "TTS generation failed")
    return {"audio_url": f"/api/audio/{path.stem}.mp3"}


@app.post("/api/actions/{action}")
async def api_feedback(action: str):
    if action not in FEEDBACK_ACTIONS:
        raise HTTPException(404, f"Unknown action: {action}")
    blocks, record = _current_hints()
    get_actions().feedback(action, blocks, record)
    return {"ok": True, "status_text": get_processor().status}


@app.get("/api/share/{target}")
async def api_share(target: str):
    if target not in SHARE_TARGETS:
        raise HTTPException(404, f"Unknown share target: {target}")
    blocks, record = _current_hints()
    return {"url": get_actions().share(target, blocks, record)}


@app.get("/api/audio/{audio_hash}.mp3")
async def api_audio(audio_hash: str):
    cache_dir = get_context().audio_cache_dir or get_context().settings.audio_cache_full_path
    audio_path = cached_audio_path(cache_dir, audio_hash)
    if not audio_path.exists():
        raise HTTPException(404, "Audio not found")
    return FileResponse(audio_path, media_type="audio/mpeg")


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_context().settings.to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    context = get_context()
    s = context.settings
    known = {f.name for f in fields(Settings)}
    merged = {**s.to_dict(), **{k: v for k, v in body.items() if k in known}}
    try:
        updated = Settings(**merged)
    except ValueError as e:
        raise HTTPException(400, str(e))
    # Runs in flight keep their own snapshot
    for name in known:
        setattr(s, name, getattr(updated, name))
    context.save_settings(s)
    return s.to_dict()


# ── API: History ──────────────────────────────────────────────────────────

@app.get("/api/history")
async def api_history(limit: int = 50):
    store = get_context().history_store
    if not isinstance(store, Database):
        return []
    return store.get_history(limit)
