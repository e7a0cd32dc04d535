"""Letter history: title and preview derivation plus the bounded entry log."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional, Union

from .storage import LETTER_HISTORY_KEY, InMemoryStore, KeyValueStore, load_json, save_json

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10
TITLE_MAX_LENGTH = 30
TITLE_MAX_WORDS = 4
PREVIEW_MAX_LENGTH = 150
ELLIPSIS = "..."

# The destination keyword is case-insensitive, the captured phrase must start
# with a capital letter and ends before punctuation or a lower-case word.
_DESTINATION_PATTERN = re.compile(
    r"\b(?i:to|for|at)\s+([A-Z][A-Za-z\s&]+?)(?:\.|,|\s+[a-z])"
)


@dataclass(frozen=True)
class DestinationMatch:
    phrase: str


@dataclass(frozen=True)
class FirstWords:
    words: List[str]


TitleSource = Union[DestinationMatch, FirstWords]


@dataclass
class HistoryEntry:
    id: int
    title: str
    preview: str
    content: str
    date: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict) -> Optional["HistoryEntry"]:
        try:
            return cls(
                id=int(payload["id"]),
                title=str(payload.get("title") or ""),
                preview=str(payload.get("preview") or ""),
                content=str(payload.get("content") or ""),
                date=str(payload.get("date") or ""),
            )
        except (KeyError, TypeError, ValueError):
            return None


def classify_title_source(first_paragraph: str) -> TitleSource:
    match = _DESTINATION_PATTERN.search(first_paragraph or "")
    if match and match.group(1).strip():
        return DestinationMatch(phrase=match.group(1).strip())
    return FirstWords(words=(first_paragraph or "").split()[:TITLE_MAX_WORDS])


def derive_title(first_paragraph: str) -> str:
    """Build a short history title from the opening paragraph of a letter."""

    source = classify_title_source(first_paragraph)
    if isinstance(source, DestinationMatch):
        title = "Letter for " + " ".join(source.phrase.split()[:TITLE_MAX_WORDS])
    else:
        title = " ".join(source.words)
    return _truncate(title, TITLE_MAX_LENGTH)


def derive_preview(content: str) -> str:
    return _truncate(content or "", PREVIEW_MAX_LENGTH)


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


class HistoryRecorder:
    """Newest-first log of saved letters, capped at ``limit`` entries."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        key: str = LETTER_HISTORY_KEY,
    ) -> None:
        self.store = store if store is not None else InMemoryStore()
        self.limit = limit
        self.key = key

    def entries(self) -> List[HistoryEntry]:
        raw_entries = load_json(self.store, self.key, default=[])
        if not isinstance(raw_entries, list):
            return []
        entries = []
        for payload in raw_entries:
            if isinstance(payload, dict):
                entry = HistoryEntry.from_dict(payload)
                if entry is not None:
                    entries.append(entry)
        return entries

    def record(self, content: str, *, first_paragraph: Optional[str] = None) -> HistoryEntry:
        entries = self.entries()
        opening = first_paragraph if first_paragraph is not None else content.split("\n\n")[0]

        entry_id = int(time.time() * 1000)
        if entries and entry_id <= entries[0].id:
            entry_id = entries[0].id + 1

        entry = HistoryEntry(
            id=entry_id,
            title=derive_title(opening),
            preview=derive_preview(content),
            content=content,
            date=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        )
        entries.insert(0, entry)
        evicted = entries[self.limit:]
        if evicted:
            LOGGER.debug("History limit reached; evicting %d entr(ies)", len(evicted))
        self._save(entries[: self.limit])
        return entry

    def find(self, entry_id: int) -> Optional[HistoryEntry]:
        for entry in self.entries():
            if entry.id == entry_id:
                return entry
        return None

    def remove(self, entry_id: int) -> bool:
        entries = self.entries()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            return False
        self._save(remaining)
        return True

    def _save(self, entries: List[HistoryEntry]) -> None:
        save_json(self.store, self.key, [entry.to_dict() for entry in entries])


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DestinationMatch",
    "FirstWords",
    "HistoryEntry",
    "HistoryRecorder",
    "classify_title_source",
    "derive_preview",
    "derive_title",
]
