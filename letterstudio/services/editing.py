"""Backend-driven edits of a letter: rewrite, shorten, complete, generate.

Each operation is split in two. ``propose_*`` coroutines only talk to the
generation backend and never touch a document, so a failed call commits
nothing. The synchronous ``apply_*`` helpers then write the result into a
:class:`~letterstudio.services.document.LetterDocument`. The combined
coroutines (``rewrite_paragraph_tone`` and friends) chain both steps for
in-process callers.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Dict, List, Optional

from system_prompts import build_prompt

from .document import LetterDocument
from .errors import (
    BackendUnavailableError,
    EmptyVariationListError,
    GenerationFailedError,
    LetterEditingError,
    PlaceholderNotFoundError,
)
from .generation import GenerationBackend, sanitize_default_names
from .history import HistoryEntry
from .placeholders import (
    PersonalInfo,
    generate_sanitized,
    resolve_placeholder,
    restore_placeholders,
    substitute_known_placeholders,
)

LOGGER = logging.getLogger(__name__)

TONE_VARIATION_COUNT = 3

_NUMBERING_PATTERN = re.compile(r'^\s*(?:[0-9]+[.)]\s*|[-*]\s+)|"?Variation [0-9]+"?\s*:\s*|"')


@dataclass
class OperationResult:
    """Transport-neutral outcome of a public editing call."""

    success: bool
    payload: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, **self.payload}
        return {"success": False, "failed": True, "error": self.reason, "kind": self.kind}


async def run_operation(operation: Awaitable[Dict[str, Any]]) -> OperationResult:
    """Await ``operation`` and fold editing errors into an :class:`OperationResult`."""

    try:
        payload = await operation
    except BackendUnavailableError as exc:
        return OperationResult(
            success=False,
            reason=f"No AI model is available: {exc} Configure an API key and try again.",
            kind=exc.kind,
        )
    except GenerationFailedError as exc:
        return OperationResult(
            success=False,
            reason=f"The AI request failed: {exc} Please try again.",
            kind=exc.kind,
        )
    except LetterEditingError as exc:
        return OperationResult(success=False, reason=str(exc), kind=exc.kind)
    return OperationResult(success=True, payload=payload or {})


def parse_variations(raw_text: str, *, limit: int = TONE_VARIATION_COUNT) -> List[str]:
    """Extract candidate rewrites from a backend answer.

    Accepts a JSON array (optionally inside a code fence) or one candidate per
    line with optional numbering.
    """

    text = (raw_text or "").strip()
    if not text:
        return []

    fence_match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fence_match:
        text = fence_match.group(1).strip()

    candidates: Optional[List[str]] = None
    if text.startswith("[") and text.endswith("]"):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            LOGGER.warning("Unable to parse tone variations as JSON; falling back to lines")
        else:
            if isinstance(parsed, list):
                candidates = [item.strip() for item in parsed if isinstance(item, str)]

    if candidates is None:
        lines = [line for line in text.splitlines() if line.strip()]
        # Shorter answers are one multi-line rewrite, such as a signature block.
        if len(lines) >= limit:
            candidates = [_NUMBERING_PATTERN.sub("", line).strip() for line in lines]
        else:
            candidates = [text]

    cleaned = [sanitize_default_names(candidate) for candidate in candidates if candidate]
    return cleaned[:limit]


async def propose_tone_variations(
    paragraph: str,
    tone: str,
    language: str,
    backend: GenerationBackend,
) -> List[str]:
    prompt = build_prompt("tone_rewrite", language=language, tone=tone, paragraph=paragraph)
    raw_text = await generate_sanitized(backend, prompt, operation="tone rewrite")
    variations = parse_variations(raw_text)
    if not variations:
        raise EmptyVariationListError("No variations returned from the generation backend.")
    if len(variations) != TONE_VARIATION_COUNT:
        LOGGER.info(
            "Tone rewrite returned %d variation(s) instead of %d",
            len(variations),
            TONE_VARIATION_COUNT,
        )
    return variations


async def propose_concise_paragraph(
    paragraph: str,
    language: str,
    backend: GenerationBackend,
    *,
    personal_info: Optional[PersonalInfo] = None,
    today: Optional[date] = None,
) -> str:
    resolved = substitute_known_placeholders(paragraph, language, personal_info, today=today)
    prompt = build_prompt("make_concise", language=language, paragraph=resolved)
    concise = await generate_sanitized(backend, prompt, operation="paragraph shortening")
    return restore_placeholders(resolved, concise)


async def propose_paragraph_completion(
    paragraph: str,
    language: str,
    backend: GenerationBackend,
) -> str:
    prompt = build_prompt("paragraph_completion", language=language, paragraph=paragraph)
    return await generate_sanitized(backend, prompt, operation="paragraph completion")


async def propose_letter(
    *,
    destination: str,
    goal: str,
    language: str,
    additional_info: str,
    backend: GenerationBackend,
) -> str:
    prompt = build_prompt(
        "letter_generation",
        language=language,
        destination=destination,
        goal=goal,
        additional_info=additional_info or "None",
    )
    return await generate_sanitized(backend, prompt, operation="letter generation")


def apply_variations(document: LetterDocument, index: int, variations: List[str]) -> str:
    return document.variations.record(index, variations)


def apply_paragraph(document: LetterDocument, index: int, text: str) -> str:
    return document.replace_paragraph(index, text)


def apply_placeholder(document: LetterDocument, index: int, placeholder: str, value: str) -> str:
    return document.replace_placeholder(index, placeholder, value.strip())


async def rewrite_paragraph_tone(
    document: LetterDocument,
    index: int,
    tone: str,
    backend: GenerationBackend,
    *,
    language: str = "en",
) -> List[str]:
    variations = await propose_tone_variations(document.paragraph(index), tone, language, backend)
    apply_variations(document, index, variations)
    return variations


async def shorten_paragraph(
    document: LetterDocument,
    index: int,
    backend: GenerationBackend,
    *,
    language: str = "en",
    personal_info: Optional[PersonalInfo] = None,
) -> str:
    concise = await propose_concise_paragraph(
        document.paragraph(index),
        language,
        backend,
        personal_info=personal_info,
    )
    return apply_paragraph(document, index, concise)


async def complete_paragraph(
    document: LetterDocument,
    index: int,
    backend: GenerationBackend,
    *,
    language: str = "en",
) -> str:
    completion = await propose_paragraph_completion(document.paragraph(index), language, backend)
    return apply_paragraph(document, index, completion)


async def autocomplete_placeholder(
    document: LetterDocument,
    index: int,
    placeholder: str,
    backend: GenerationBackend,
    *,
    language: str = "en",
    personal_info: Optional[PersonalInfo] = None,
) -> str:
    paragraph = document.paragraph(index)
    if placeholder not in paragraph:
        raise PlaceholderNotFoundError(placeholder, index)
    completion = await resolve_placeholder(paragraph, placeholder, language, personal_info, backend)
    apply_placeholder(document, index, placeholder, completion)
    return completion


async def generate_letter(
    document: LetterDocument,
    backend: GenerationBackend,
    *,
    destination: str,
    goal: str,
    language: str = "en",
    additional_info: str = "",
) -> Optional[HistoryEntry]:
    letter = await propose_letter(
        destination=destination,
        goal=goal,
        language=language,
        additional_info=additional_info,
        backend=backend,
    )
    return document.set_content(letter, record_history=True)


__all__ = [
    "OperationResult",
    "TONE_VARIATION_COUNT",
    "apply_paragraph",
    "apply_placeholder",
    "apply_variations",
    "autocomplete_placeholder",
    "complete_paragraph",
    "generate_letter",
    "parse_variations",
    "propose_concise_paragraph",
    "propose_letter",
    "propose_paragraph_completion",
    "propose_tone_variations",
    "rewrite_paragraph_tone",
    "run_operation",
    "shorten_paragraph",
]
