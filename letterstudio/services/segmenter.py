"""Split letter text into paragraphs and join them back."""

from __future__ import annotations

import re
from typing import Iterable, List

PARAGRAPH_SEPARATOR = "\n\n"

_BLANK_LINE_PATTERN = re.compile(r"\r?\n(?:[ \t]*\r?\n)+")
_MARKUP_PATTERN = re.compile(r"[*_~`#]")


def segment(raw: str) -> List[str]:
    """Return the trimmed, non-empty paragraphs of ``raw`` in order."""

    if not raw:
        return []
    return [part.strip() for part in _BLANK_LINE_PATTERN.split(raw) if part.strip()]


def join(paragraphs: Iterable[str]) -> str:
    return PARAGRAPH_SEPARATOR.join(paragraphs)


def strip_markup(raw: str) -> str:
    """Remove markdown decoration characters the backends like to emit."""

    return _MARKUP_PATTERN.sub("", raw or "")


def collapse_blank_lines(text: str) -> str:
    """Fold blank lines inside ``text`` so it stays a single paragraph."""

    return _BLANK_LINE_PATTERN.sub("\n", (text or "").strip())


__all__ = ["PARAGRAPH_SEPARATOR", "collapse_blank_lines", "join", "segment", "strip_markup"]
