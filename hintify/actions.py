"""Action bar for a rendered hint set: copy, speak, like/dislike, regenerate, share."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote

from hintify.audio import get_or_create_audio
from hintify.models import Hint, HintBlock, ProcessingResult, QuestionRecord

if TYPE_CHECKING:
    from hintify.pipeline import PipelineContext
    from hintify.processor import CaptureProcessor

_log = logging.getLogger("hintify.actions")

SHARE_SUBJECT = "Hintify Hints"

SHARE_TARGETS = {
    "gmail": "https://mail.google.com/mail/?view=cm&fs=1&su={subject}&body={body}",
    "mailto": "mailto:?subject={subject}&body={body}",
    "whatsapp": "https://wa.me/?text={body}",
    "telegram": "https://t.me/share/url?text={body}",
    "twitter": "https://twitter.com/intent/tweet?text={body}",
}

FEEDBACK_ACTIONS = ("like", "dislike")


def _encode(text: str) -> str:
    # same escaping as JavaScript's encodeURIComponent
    return quote(text, safe="-_.!~*'()")


def flatten_hints(blocks: Sequence[HintBlock]) -> str:
    return "\n".join(f"{b.label} {b.text}" for b in blocks if isinstance(b, Hint))


def format_for_sharing(blocks: Sequence[HintBlock], record: QuestionRecord | None) -> str:
    question = (record.question_text or record.answer_text).strip() if record else ""
    header = f"Question:\n{question}\n\n" if question else ""
    return f"{header}Hints:\n{flatten_hints(blocks)}"


def share_url(target: str, text: str) -> str:
    template = SHARE_TARGETS.get(target)
    if template is None:
        raise ValueError(f"Unknown share target: {target}")
    return template.format(subject=_encode(SHARE_SUBJECT), body=_encode(text))


class HintActions:
    def __init__(self, context: PipelineContext, processor: CaptureProcessor):
        self.context = context
        self.processor = processor

    def _log_activity(self, category: str, action: str, details: dict | None = None) -> None:
        try:
            self.context.activity_log.log(category, action, details)
        except Exception as e:
            _log.warning("Activity log failed (%s.%s): %s", category, action, e)

    def copy(self, blocks: Sequence[HintBlock], record: QuestionRecord | None) -> str:
        text = format_for_sharing(blocks, record)
        if self.context.clipboard is not None:
            self.context.clipboard.set_text(text)
        self.processor.status = "All hints copied"
        return text

    async def speak(self, blocks: Sequence[HintBlock], record: QuestionRecord | None) -> Path | None:
        text = flatten_hints(blocks)
        tts = self.context.tts
        if not text or tts is None:
            self.processor.status = "Nothing to speak"
            return None
        cache_dir = self.context.audio_cache_dir or Path("audio_cache")
        path = await get_or_create_audio(text, tts, cache_dir)
        self.processor.status = "Speaking all hints..." if path else "Speech failed"
        return path

    def feedback(self, action: str, blocks: Sequence[HintBlock], record: QuestionRecord | None) -> None:
        if action not in FEEDBACK_ACTIONS:
            raise ValueError(f"Unknown feedback action: {action}")
        flat = flatten_hints(blocks)
        hints = [b for b in blocks if isinstance(b, Hint)]
        self._log_activity("review", action, {"total_hints": len(hints), "total_length": len(flat)})
        self.processor.status = "Marked helpful" if action == "like" else "Marked unhelpful"

    async def regenerate(self) -> ProcessingResult:
        return await self.processor.regenerate()

    def share(self, target: str, blocks: Sequence[HintBlock], record: QuestionRecord | None) -> str:
        url = share_url(target, format_for_sharing(blocks, record))
        self._log_activity("share", target, {"length": len(url)})
        return url
