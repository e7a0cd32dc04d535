"""Service layer for editing letters with a generation backend."""

from __future__ import annotations

from .document import LetterDocument  # noqa: F401
from .editing import (  # noqa: F401
    OperationResult,
    autocomplete_placeholder,
    complete_paragraph,
    generate_letter,
    rewrite_paragraph_tone,
    run_operation,
    shorten_paragraph,
)
from .errors import (  # noqa: F401
    BackendError,
    BackendUnavailableError,
    EmptyVariationListError,
    GenerationFailedError,
    LetterEditingError,
    ParagraphIndexError,
)
from .generation import GenerationBackend, get_generation_backend  # noqa: F401
from .history import HistoryEntry, HistoryRecorder  # noqa: F401
from .placeholders import PersonalInfo, resolve_placeholder  # noqa: F401

__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "EmptyVariationListError",
    "GenerationBackend",
    "GenerationFailedError",
    "HistoryEntry",
    "HistoryRecorder",
    "LetterDocument",
    "LetterEditingError",
    "OperationResult",
    "ParagraphIndexError",
    "PersonalInfo",
    "autocomplete_placeholder",
    "complete_paragraph",
    "generate_letter",
    "get_generation_backend",
    "resolve_placeholder",
    "rewrite_paragraph_tone",
    "run_operation",
    "shorten_paragraph",
]
