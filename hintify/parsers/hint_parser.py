"""Parse a hint-formatted LLM response into Hint / Encouragement / Plain blocks.

Expected shape (what the prompts ask for):
  Hint 1: ...
  Hint 2: ...
  Now try completing the final step on your own.

Display math wrapped in ``$$`` may span several lines; those lines are merged
into one logical line before classification so a formula is never split.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from hintify.models import Encouragement, Hint, HintBlock, Plain, is_sentinel

DISPLAY_MATH = "$$"
ENCOURAGEMENT_PHRASES = ("now try", "work carefully", "complete")

_HINT_LINE = re.compile(r"^(Hint\s+\d+:)\s*(.*)$", re.IGNORECASE | re.DOTALL)


def merge_math_blocks(text: str) -> list[str]:
    out: list[str] = []
    buf: str | None = None
    for line in (text or "").split("\n"):
        if buf is None:
            if line.count(DISPLAY_MATH) % 2 == 1:
                buf = line
            else:
                out.append(line)
            continue
        buf += "\n" + line
        if buf.count(DISPLAY_MATH) % 2 == 0:
            out.append(buf)
            buf = None
    if buf:
        # unterminated block: keep what we have rather than dropping it
        out.append(buf)
    return [ln for ln in out if ln.strip()]


def classify_line(line: str) -> HintBlock:
    trimmed = line.strip()
    m = _HINT_LINE.match(trimmed)
    if m:
        return Hint(label=m.group(1), text=m.group(2))
    lower = trimmed.lower()
    if any(p in lower for p in ENCOURAGEMENT_PHRASES):
        return Encouragement(text=trimmed)
    return Plain(text=trimmed)


def parse_hints(text: str) -> tuple[HintBlock, ...]:
    return tuple(classify_line(line) for line in merge_math_blocks(text))


@dataclass(frozen=True)
class RenderedHints:
    blocks: tuple[HintBlock, ...]
    error: str | None = None

    @property
    def hints(self) -> list[Hint]:
        return [b for b in self.blocks if isinstance(b, Hint)]

    @property
    def has_actions(self) -> bool:
        """The action bar is shown only when at least one hint was parsed."""
        return bool(self.hints)


def render(text: str | None) -> RenderedHints:
    """Parse *text*, or turn sentinel text into an error panel."""
    if is_sentinel(text):
        return RenderedHints(
            blocks=(),
            error=(text or "").strip() or "Failed to generate hints. Please try again.",
        )
    return RenderedHints(blocks=parse_hints(text))
