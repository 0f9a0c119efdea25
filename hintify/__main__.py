"""CLI entry point for hintify.

Usage:
  python -m hintify serve [--port PORT] [--host HOST]
  python -m hintify stop
  python -m hintify restart [--port PORT]
  python -m hintify status
  python -m hintify process <file>
  python -m hintify ask <question text>
"""
from __future__ import annotations

import asyncio
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "process":
        _process(args[1:])
    elif command == "ask":
        _ask(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, process, ask")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        PID_FILE.unlink(missing_ok=True)
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        PID_FILE.unlink(missing_ok=True)
        return False


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")
    asyncio.run(_print_readiness())


async def _print_readiness():
    from hintify.config import load_settings
    from hintify.ocr.base import select_engine
    from hintify.pipeline import build_provider, default_ocr_engines

    settings = load_settings()
    warning = await build_provider(settings).check_status()
    print(f"Provider: {settings.provider} ({settings.active_model})", end="")
    print(f"  [{warning}]" if warning else "  [ready]")
    if settings.advanced_mode:
        print("OCR: skipped (Advanced Mode)")
    else:
        engine = await select_engine(default_ocr_engines(settings))
        print(f"OCR: {engine.name() if engine else 'none available'}")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8765"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting Hintify on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "hintify.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


def _build_processor():
    from hintify.app import build_context
    from hintify.config import load_settings
    from hintify.db import Database
    from hintify.processor import CaptureProcessor

    settings = load_settings()
    db = Database(settings.db_full_path)
    return CaptureProcessor(build_context(settings, db)), db


def _print_result(result) -> None:
    from hintify.models import Encouragement, Hint
    from hintify.parsers.hint_parser import render

    if result.status != "ok" or result.response is None or result.response.is_error:
        rendered = render(result.display_text)
        print(rendered.error or result.display_text)
        sys.exit(1)
    for block in result.blocks:
        if isinstance(block, Hint):
            print(f"{block.label} {block.text}")
        elif isinstance(block, Encouragement):
            print(f"\n{block.text}")
        else:
            print(block.text)


def _process(args: list[str]):
    from hintify.pipeline import FileSource

    if not args:
        print("Usage: python -m hintify process <file>")
        sys.exit(1)
    path = Path(args[0])
    if not path.exists():
        print(f"File not found: {path}")
        sys.exit(1)

    processor, db = _build_processor()
    try:
        result = asyncio.run(processor.process_source(FileSource(path)))
    finally:
        db.close()
    _print_result(result)


def _ask(args: list[str]):
    from hintify.models import TextInput

    text = " ".join(args).strip()
    if not text:
        print("Usage: python -m hintify ask <question text>")
        sys.exit(1)

    processor, db = _build_processor()
    try:
        result = asyncio.run(processor.process(TextInput(text)))
    finally:
        db.close()
    _print_result(result)


if __name__ == "__main__":
    main()
