"""Error taxonomy shared by the letter editing services and generation backends."""

from __future__ import annotations

from typing import Optional


class LetterEditingError(RuntimeError):
    """Base class for failures raised while editing a letter."""

    kind = "editing_error"


class ParagraphIndexError(LetterEditingError, IndexError):
    """Raised when a paragraph index falls outside the current letter."""

    kind = "index_out_of_range"

    def __init__(self, index: int, paragraph_count: int) -> None:
        super().__init__(
            f"Paragraph {index} does not exist; the letter has {paragraph_count} paragraph(s)."
        )
        self.index = index
        self.paragraph_count = paragraph_count


class EmptyParagraphError(LetterEditingError, ValueError):
    """Raised when an edit would leave a paragraph without text."""

    kind = "empty_paragraph"


class PlaceholderNotFoundError(LetterEditingError):
    """Raised when a placeholder to complete is not in the target paragraph."""

    kind = "placeholder_not_found"

    def __init__(self, placeholder: str, index: int) -> None:
        super().__init__(f"Placeholder {placeholder} does not appear in paragraph {index}.")
        self.placeholder = placeholder
        self.index = index


class EmptyVariationListError(LetterEditingError):
    """Raised when a rewrite produced no candidate variations."""

    kind = "empty_variation_list"


class BackendUnavailableError(LetterEditingError):
    """Raised when no generation backend is configured for the request.

    Kept distinct from :class:`GenerationFailedError` so callers can prompt for
    configuration instead of offering a retry.
    """

    kind = "backend_unavailable"

    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        super().__init__(message)
        self.provider = provider


class BackendError(LetterEditingError):
    """Raised by a backend adapter when the remote call fails.

    ``kind`` is one of ``auth``, ``rate_limit``, ``server``, ``empty`` or
    ``unknown``; callers may log it but treat every kind as a failed request.
    """

    kind = "backend_error"

    def __init__(self, message: str, *, kind: str = "unknown", provider: str = "unknown") -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider


class BackendAuthError(BackendError):
    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        super().__init__(message, kind="auth", provider=provider)


class BackendRateLimitError(BackendError):
    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        super().__init__(message, kind="rate_limit", provider=provider)


class BackendServerError(BackendError):
    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        super().__init__(message, kind="server", provider=provider)


class GenerationFailedError(LetterEditingError):
    """Raised when a generation-dependent operation cannot produce usable text."""

    kind = "generation_failed"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


__all__ = [
    "BackendAuthError",
    "BackendError",
    "BackendRateLimitError",
    "BackendServerError",
    "BackendUnavailableError",
    "EmptyParagraphError",
    "EmptyVariationListError",
    "GenerationFailedError",
    "LetterEditingError",
    "ParagraphIndexError",
    "PlaceholderNotFoundError",
]
