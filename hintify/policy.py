"""Bounded one-shot fallback used by the Gemini model retry and the OCR-to-vision switch."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

_log = logging.getLogger("hintify.policy")


async def fallback_once(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]] | None,
    when: Callable[[BaseException], bool],
) -> T:
    """Await *primary*; if it raises an error accepted by *when*, await *fallback* once.

    The fallback's own errors propagate unchanged. There is never a second retry.
    """
    try:
        return await primary()
    except Exception as e:
        if fallback is None or not when(e):
            raise
        _log.info("Primary attempt failed (%s), running fallback once", e)
    return await fallback()
