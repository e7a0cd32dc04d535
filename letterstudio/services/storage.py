"""Key-value persistence used for letter state, history and personal info."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Protocol

LETTER_DOCUMENT_KEY = "letter_document"
LETTER_HISTORY_KEY = "letter_history"
PERSONAL_INFO_KEY = "personal_info"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def list(self) -> List[str]:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStore:
    """Dictionary-backed store for documents that are not persisted."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def list(self) -> List[str]:
        return sorted(self._values)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class DatabaseStore:
    """Store rows in the ``stored_values`` table, scoped to one ``namespace``.

    Values are committed on every write; the store makes no atomicity promise
    across keys.
    """

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def _row(self, key: str):
        from ..models import StoredValue

        return StoredValue.query.filter_by(namespace=self.namespace, key=key).first()

    def get(self, key: str) -> Optional[str]:
        row = self._row(key)
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        from ..extensions import db
        from ..models import StoredValue

        row = self._row(key)
        if row is None:
            row = StoredValue(namespace=self.namespace, key=key, value=value)
            db.session.add(row)
        else:
            row.value = value
        db.session.commit()

    def list(self) -> List[str]:
        from ..models import StoredValue

        rows = StoredValue.query.filter_by(namespace=self.namespace).order_by(StoredValue.key).all()
        return [row.key for row in rows]

    def remove(self, key: str) -> None:
        from ..extensions import db

        row = self._row(key)
        if row is not None:
            db.session.delete(row)
            db.session.commit()


def load_json(store: KeyValueStore, key: str, default: Any = None) -> Any:
    raw = store.get(key)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


def save_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value, ensure_ascii=False))


__all__ = [
    "DatabaseStore",
    "InMemoryStore",
    "KeyValueStore",
    "LETTER_DOCUMENT_KEY",
    "LETTER_HISTORY_KEY",
    "PERSONAL_INFO_KEY",
    "load_json",
    "save_json",
]
