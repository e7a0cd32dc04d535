"""Generation backend contract and configuration-driven selection."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Optional

from flask import current_app

from .errors import BackendUnavailableError

DEFAULT_NAMES = ("John Doe", "Jane Doe", "Jean Dupont", "Marie Dupont")
NAME_PLACEHOLDER = "[your name]"

_BACKEND_CACHE_KEY = "_GENERATION_BACKEND_INSTANCES"


class GenerationBackend(ABC):
    """Anything that turns a prompt into generated text.

    ``generate`` raises :class:`~letterstudio.services.errors.BackendError`
    (or a subclass) when the remote call fails and never returns ``None``.
    """

    name: str = "backend"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        raise NotImplementedError


def sanitize_default_names(text: str, names: Iterable[str] = DEFAULT_NAMES) -> str:
    """Replace stand-in names such as "John Doe" with a name placeholder."""

    cleaned = text or ""
    for name in names:
        cleaned = re.sub(re.escape(name), NAME_PLACEHOLDER, cleaned)
    return cleaned


def _build_claude(config: Dict[str, Any]) -> Optional[GenerationBackend]:
    api_key = (config.get("CLAUDE_API_KEY") or "").strip()
    if not api_key:
        return None
    from claude_handler import ClaudeGenerator

    return ClaudeGenerator(
        api_key=api_key,
        model=config.get("CLAUDE_MODEL"),
        fallback_model=config.get("CLAUDE_FALLBACK_MODEL"),
        max_tokens=config.get("GENERATION_MAX_TOKENS", 1000),
        temperature=config.get("GENERATION_TEMPERATURE"),
    )


def _build_deepseek(config: Dict[str, Any]) -> Optional[GenerationBackend]:
    api_key = (config.get("DEEPSEEK_API_KEY") or "").strip()
    if not api_key:
        return None
    from api_handler import OpenAICompatibleGenerator

    return OpenAICompatibleGenerator(
        provider="deepseek",
        model_name=config.get("DEEPSEEK_MODEL") or "deepseek-chat",
        api_key=api_key,
        base_url=config.get("DEEPSEEK_API_BASE"),
        default_max_tokens=config.get("GENERATION_MAX_TOKENS", 1000),
        temperature=config.get("GENERATION_TEMPERATURE"),
    )


def _build_openai(config: Dict[str, Any]) -> Optional[GenerationBackend]:
    api_key = (config.get("OPENAI_API_KEY") or "").strip()
    if not api_key:
        return None
    from api_handler import OpenAICompatibleGenerator

    return OpenAICompatibleGenerator(
        provider="openai",
        model_name=config.get("OPENAI_MODEL") or "gpt-4o-mini",
        api_key=api_key,
        default_max_tokens=config.get("GENERATION_MAX_TOKENS", 1000),
        temperature=config.get("GENERATION_TEMPERATURE"),
    )


def _build_local(config: Dict[str, Any]) -> Optional[GenerationBackend]:
    model_path = (config.get("TEXT_GENERATOR_MODEL_PATH") or "").strip()
    if not model_path:
        return None
    from text_generator import LocalTextGenerator

    return LocalTextGenerator(
        model_path=model_path,
        max_new_tokens=config.get("GENERATION_MAX_TOKENS", 1000),
        temperature=config.get("GENERATION_TEMPERATURE"),
    )


BACKEND_BUILDERS: Dict[str, Callable[[Dict[str, Any]], Optional[GenerationBackend]]] = {
    "claude": _build_claude,
    "deepseek": _build_deepseek,
    "openai": _build_openai,
    "local": _build_local,
}

_CONFIG_KEYS = {
    "claude": "CLAUDE_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "openai": "OPENAI_API_KEY",
    "local": "TEXT_GENERATOR_MODEL_PATH",
}


def available_backends() -> Dict[str, bool]:
    config = current_app.config
    return {name: bool((config.get(key) or "").strip()) for name, key in _CONFIG_KEYS.items()}


def get_generation_backend(name: Optional[str] = None) -> GenerationBackend:
    """Return the backend called ``name`` or the configured default.

    Raises :class:`BackendUnavailableError` when the backend is unknown or its
    credentials are missing; no other provider is tried in its place.
    """

    app = current_app
    backend_name = (name or app.config.get("GENERATION_BACKEND") or "").strip().lower()
    builder = BACKEND_BUILDERS.get(backend_name)
    if builder is None:
        raise BackendUnavailableError(
            f"Unknown generation backend '{backend_name or name}'.",
            provider=backend_name or "unknown",
        )

    cache = app.extensions.setdefault(_BACKEND_CACHE_KEY, {})
    if backend_name in cache:
        return cache[backend_name]

    backend = builder(app.config)
    if backend is None:
        app.logger.info("Generation backend '%s' requested but not configured.", backend_name)
        raise BackendUnavailableError(
            f"The selected AI model ({backend_name}) is not available. API key not configured.",
            provider=backend_name,
        )

    app.logger.info("Using generation backend '%s'.", backend_name)
    cache[backend_name] = backend
    return backend


__all__ = [
    "BACKEND_BUILDERS",
    "DEFAULT_NAMES",
    "GenerationBackend",
    "NAME_PLACEHOLDER",
    "available_backends",
    "get_generation_backend",
    "sanitize_default_names",
]
