"""Per-paragraph candidate rewrites with cyclic navigation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence

from .errors import EmptyVariationListError

LOGGER = logging.getLogger(__name__)

ParagraphWriter = Callable[[int, str], None]


@dataclass
class VariationSet:
    candidates: List[str]
    cursor: int = 0

    def __post_init__(self) -> None:
        if not self.candidates:
            raise EmptyVariationListError("A variation set needs at least one candidate.")
        if not 0 <= self.cursor < len(self.candidates):
            self.cursor = 0

    @property
    def current(self) -> str:
        return self.candidates[self.cursor]

    def to_dict(self) -> Dict[str, Any]:
        return {"candidates": list(self.candidates), "cursor": self.cursor}


class VariationManager:
    """Track alternative phrasings for each paragraph of one letter.

    Every index holds an independent state machine: *absent* until
    :meth:`record` installs a set, then cycling through the candidates until
    the owning document clears it. Writes go through ``writer`` so the owning
    document stays the only component that touches paragraph text.
    """

    def __init__(self, writer: ParagraphWriter) -> None:
        self._writer = writer
        self._sets: Dict[int, VariationSet] = {}

    def record(self, index: int, candidates: Sequence[str]) -> str:
        """Install ``candidates`` for ``index`` and show the first one."""

        cleaned = [candidate for candidate in candidates if candidate]
        if not cleaned:
            raise EmptyVariationListError(
                f"The rewrite for paragraph {index} returned no variations."
            )

        # Write first: an invalid index must leave the previous set in place.
        self._writer(index, cleaned[0])
        self._sets[index] = VariationSet(candidates=cleaned)
        LOGGER.debug("Recorded %d variation(s) for paragraph %d", len(cleaned), index)
        return cleaned[0]

    def next(self, index: int) -> bool:
        return self._step(index, 1)

    def previous(self, index: int) -> bool:
        return self._step(index, -1)

    def _step(self, index: int, offset: int) -> bool:
        variation_set = self._sets.get(index)
        if variation_set is None or len(variation_set.candidates) <= 1:
            return False

        length = len(variation_set.candidates)
        new_cursor = (variation_set.cursor + offset + length) % length
        self._writer(index, variation_set.candidates[new_cursor])
        variation_set.cursor = new_cursor
        return True

    def has_variations(self, index: int) -> bool:
        variation_set = self._sets.get(index)
        return variation_set is not None and len(variation_set.candidates) > 1

    def current_index(self, index: int) -> int:
        variation_set = self._sets.get(index)
        return variation_set.cursor if variation_set else 0

    def count(self, index: int) -> int:
        variation_set = self._sets.get(index)
        return len(variation_set.candidates) if variation_set else 1

    def clear(self, index: int) -> None:
        self._sets.pop(index, None)

    def clear_all(self) -> None:
        self._sets.clear()

    def to_state(self) -> Dict[str, Dict[str, Any]]:
        return {str(index): variation_set.to_dict() for index, variation_set in self._sets.items()}

    def load_state(self, state: Mapping[str, Any], paragraph_count: int) -> None:
        """Restore sets saved by :meth:`to_state`, skipping stale or malformed entries."""

        self._sets.clear()
        for raw_index, payload in (state or {}).items():
            try:
                index = int(raw_index)
            except (TypeError, ValueError):
                continue
            if not 0 <= index < paragraph_count or not isinstance(payload, Mapping):
                continue
            candidates = [str(item) for item in payload.get("candidates") or [] if item]
            if not candidates:
                continue
            cursor = payload.get("cursor", 0)
            self._sets[index] = VariationSet(
                candidates=candidates,
                cursor=cursor if isinstance(cursor, int) else 0,
            )


__all__ = ["ParagraphWriter", "VariationManager", "VariationSet"]
