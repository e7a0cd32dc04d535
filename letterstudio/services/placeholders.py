"""Resolve bracketed placeholders locally or through a generation backend.

Resolution order for a single placeholder, first match wins:

1. Date placeholders resolve to today's date in the letter's language.
2. Placeholders naming a personal-info category resolve to the user's stored
   value when that value is non-empty.
3. Everything else is delegated to the generation backend and the answer is
   scrubbed of stand-in names.

Steps 1 and 2 never touch the network and cannot fail.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, fields
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from system_prompts import build_prompt

from .errors import BackendError, GenerationFailedError
from .generation import GenerationBackend, sanitize_default_names

LOGGER = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\[(.*?)\]")

DATE_KEYWORDS = ("date", "jour", "mois", "année", "annee")

# Table order decides which category wins when several keyword sets match.
PERSONAL_INFO_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("full_name", (
        "name", "nom", "prénom", "prenom", "full name", "nom complet", "first name",
        "last name", "nom de famille",
    )),
    ("email", (
        "email", "e-mail", "courriel", "mail", "electronic mail", "courrier électronique",
        "adresse email",
    )),
    ("phone", (
        "phone", "telephone", "téléphone", "mobile", "cell", "cellphone", "portable",
        "numéro", "numero",
    )),
    ("address", (
        "address", "adresse", "location", "lieu", "domicile", "residence", "résidence",
        "street", "rue", "city", "ville", "country", "pays",
    )),
    ("education", (
        "education", "éducation", "degree", "diplôme", "diplome", "university", "université",
        "universite", "school", "école", "ecole", "college", "collège", "formation",
        "training", "bac", "master", "phd", "doctorate",
    )),
    ("experience", (
        "experience", "expérience", "work", "travail", "job", "emploi", "career", "carrière",
        "carriere", "profession", "occupation", "position", "poste", "role", "rôle",
    )),
    ("skills", (
        "skill", "skills", "compétence", "competence", "compétences", "competences", "ability",
        "abilities", "capacité", "capacite", "aptitude", "expertise", "knowledge", "connaissance",
    )),
)


@dataclass(frozen=True)
class PersonalInfo:
    full_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    education: str = ""
    experience: str = ""
    skills: str = ""

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> Optional["PersonalInfo"]:
        if not payload:
            return None
        aliases = {"fullName": "full_name", "name": "full_name"}
        values: Dict[str, str] = {}
        for key, value in payload.items():
            field_name = aliases.get(key, key)
            if isinstance(value, str) and field_name in cls.field_names():
                values.setdefault(field_name, value)
        return cls(**values)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def normalize_placeholder(placeholder: str) -> str:
    return re.sub(r"[\[\]]", "", placeholder or "").strip().lower()


def format_date(today: date, language: str) -> str:
    if language == "fr":
        return f"{today.day:02d}/{today.month:02d}/{today.year}"
    return f"{today.month}/{today.day}/{today.year}"


def is_date_placeholder(placeholder: str) -> bool:
    normalized = normalize_placeholder(placeholder)
    return any(keyword in normalized for keyword in DATE_KEYWORDS)


def match_personal_info(placeholder: str, personal_info: Optional[PersonalInfo]) -> Optional[str]:
    """Return the personal-info value a placeholder asks for, if the user supplied one."""

    if personal_info is None:
        return None
    normalized = normalize_placeholder(placeholder)
    for field_name, keywords in PERSONAL_INFO_KEYWORDS:
        if not any(keyword in normalized for keyword in keywords):
            continue
        value = getattr(personal_info, field_name, "") or ""
        if value.strip():
            return value
    return None


def resolve_locally(
    placeholder: str,
    language: str,
    personal_info: Optional[PersonalInfo],
    *,
    today: Optional[date] = None,
) -> Optional[str]:
    if is_date_placeholder(placeholder):
        return format_date(today or date.today(), language)
    return match_personal_info(placeholder, personal_info)


async def resolve_placeholder(
    paragraph: str,
    placeholder: str,
    language: str,
    personal_info: Optional[PersonalInfo],
    backend: GenerationBackend,
    *,
    today: Optional[date] = None,
) -> str:
    """Return the text that should replace ``placeholder`` in ``paragraph``."""

    local_value = resolve_locally(placeholder, language, personal_info, today=today)
    if local_value is not None:
        LOGGER.info("Resolved placeholder %s without the generation backend", placeholder)
        return local_value

    prompt = build_prompt(
        "placeholder_completion",
        language=language,
        paragraph=paragraph,
        placeholder=placeholder,
    )
    completion = await generate_sanitized(backend, prompt, operation="placeholder completion")
    return completion


async def generate_sanitized(backend: GenerationBackend, prompt: str, *, operation: str) -> str:
    """Call ``backend`` and return trimmed, name-scrubbed text.

    Backend errors and empty answers become :class:`GenerationFailedError`;
    :class:`~letterstudio.services.errors.BackendUnavailableError` propagates
    untouched.
    """

    try:
        raw_text = await backend.generate(prompt)
    except BackendError as exc:
        LOGGER.warning(
            "Generation backend %s failed during %s (%s): %s",
            exc.provider,
            operation,
            exc.kind,
            exc,
        )
        raise GenerationFailedError(f"Failed to run {operation}: {exc}", cause=exc) from exc

    text = sanitize_default_names((raw_text or "").strip())
    if not text:
        raise GenerationFailedError(f"The generation backend returned no text for {operation}.")
    return text


def find_placeholders(text: str) -> List[str]:
    return [match.group(0) for match in PLACEHOLDER_PATTERN.finditer(text or "")]


def substitute_known_placeholders(
    paragraph: str,
    language: str,
    personal_info: Optional[PersonalInfo],
    *,
    today: Optional[date] = None,
) -> str:
    """Inline every placeholder that can be resolved without the backend."""

    resolved = paragraph
    for placeholder in find_placeholders(paragraph):
        value = resolve_locally(placeholder, language, personal_info, today=today)
        if value is not None:
            LOGGER.debug("Substituting %s before generation", placeholder)
            resolved = resolved.replace(placeholder, value, 1)
    return resolved


def restore_placeholders(source: str, output: str) -> str:
    """Make sure placeholders left in ``source`` survive verbatim in ``output``.

    Variants that differ only in case or spacing are rewritten to the source
    spelling. A placeholder that vanished means the backend invented a value
    for it, which fails the operation.
    """

    restored = output
    missing: List[str] = []
    for placeholder in dict.fromkeys(find_placeholders(source)):
        if placeholder in restored:
            continue
        target = _squash(placeholder)
        for candidate in dict.fromkeys(find_placeholders(restored)):
            if _squash(candidate) == target:
                restored = restored.replace(candidate, placeholder)
                break
        else:
            missing.append(placeholder)

    if missing:
        raise GenerationFailedError(
            "The generated text dropped placeholder(s): " + ", ".join(missing)
        )
    return restored


def _squash(placeholder: str) -> str:
    return " ".join(normalize_placeholder(placeholder).split())


__all__ = [
    "DATE_KEYWORDS",
    "PERSONAL_INFO_KEYWORDS",
    "PersonalInfo",
    "find_placeholders",
    "format_date",
    "generate_sanitized",
    "is_date_placeholder",
    "match_personal_info",
    "normalize_placeholder",
    "resolve_locally",
    "resolve_placeholder",
    "restore_placeholders",
    "substitute_known_placeholders",
]
