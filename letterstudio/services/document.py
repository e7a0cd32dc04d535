"""The letter aggregate: paragraphs, variation state and history hooks."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from . import segmenter
from .errors import EmptyParagraphError, ParagraphIndexError
from .history import HistoryEntry, HistoryRecorder
from .variations import VariationManager

LOGGER = logging.getLogger(__name__)


class LetterDocument:
    """One letter being edited.

    The document is the only writer of its paragraphs. Manual edits and
    content replacement clear the affected variation sets before returning,
    so stale variants can never be cycled back in after an edit.
    """

    def __init__(self, content: str = "", *, history: Optional[HistoryRecorder] = None) -> None:
        self.history = history if history is not None else HistoryRecorder()
        self.variations = VariationManager(self._write)
        self._paragraphs: List[str] = segmenter.segment(content)

    @property
    def content(self) -> str:
        return segmenter.join(self._paragraphs)

    def get_paragraphs(self) -> Tuple[str, ...]:
        return tuple(self._paragraphs)

    def paragraph(self, index: int) -> str:
        self._check_index(index)
        return self._paragraphs[index]

    def __len__(self) -> int:
        return len(self._paragraphs)

    def set_content(self, raw: str, *, record_history: bool = False) -> Optional[HistoryEntry]:
        """Replace the whole letter and drop every variation set."""

        plain_text = segmenter.strip_markup(raw)
        self._paragraphs = segmenter.segment(plain_text)
        self.variations.clear_all()

        if not record_history:
            return None
        first_paragraph = self._paragraphs[0] if self._paragraphs else ""
        entry = self.history.record(plain_text.strip(), first_paragraph=first_paragraph)
        LOGGER.info("Saved letter %s to history as %r", entry.id, entry.title)
        return entry

    def replace_paragraph(self, index: int, text: str) -> str:
        """Overwrite paragraph ``index`` as a manual edit."""

        self._write(index, text)
        self.variations.clear(index)
        return self._paragraphs[index]

    def replace_placeholder(self, index: int, placeholder: str, value: str) -> str:
        """Swap the first occurrence of ``placeholder`` in paragraph ``index`` for ``value``."""

        current = self.paragraph(index)
        return self.replace_paragraph(index, current.replace(placeholder, value, 1))

    def load_from_history(self, entry_id: int) -> bool:
        entry = self.history.find(entry_id)
        if entry is None:
            LOGGER.debug("History entry %s not found; keeping current letter", entry_id)
            return False
        self._paragraphs = segmenter.segment(entry.content)
        self.variations.clear_all()
        return True

    def remove_history_entry(self, entry_id: int) -> bool:
        return self.history.remove(entry_id)

    def variation_summary(self) -> List[Dict[str, Any]]:
        return [
            {
                "index": index,
                "text": text,
                "has_variations": self.variations.has_variations(index),
                "current_variation": self.variations.current_index(index),
                "variation_count": self.variations.count(index),
            }
            for index, text in enumerate(self._paragraphs)
        ]

    def to_state(self) -> Dict[str, Any]:
        return {"content": self.content, "variations": self.variations.to_state()}

    @classmethod
    def from_state(
        cls,
        state: Optional[Mapping[str, Any]],
        *,
        history: Optional[HistoryRecorder] = None,
    ) -> "LetterDocument":
        state = state or {}
        document = cls(str(state.get("content") or ""), history=history)
        variations = state.get("variations")
        if isinstance(variations, Mapping):
            document.variations.load_state(variations, len(document))
        return document

    def _write(self, index: int, text: str) -> None:
        self._check_index(index)
        cleaned = segmenter.collapse_blank_lines(text)
        if not cleaned:
            raise EmptyParagraphError("Paragraph text cannot be empty.")
        self._paragraphs[index] = cleaned

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or not 0 <= index < len(self._paragraphs):
            raise ParagraphIndexError(index, len(self._paragraphs))


__all__ = ["LetterDocument"]
