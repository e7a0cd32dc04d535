# claude_handler.py
from __future__ import annotations

import logging
from typing import Any, Optional

import anthropic

from letterstudio.services.errors import (
    BackendAuthError,
    BackendError,
    BackendRateLimitError,
    BackendServerError,
)
from letterstudio.services.generation import GenerationBackend

LOGGER = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_CLAUDE_FALLBACK_MODEL = "claude-3-haiku-20240307"


class ClaudeGenerator(GenerationBackend):
    """Anthropic Messages API backend.

    When the primary model is rejected as unknown the call is repeated once
    with ``fallback_model``; every other failure is mapped to a
    :class:`BackendError` kind.
    """

    name = "claude"

    def __init__(
        self,
        *,
        api_key: str,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: Optional[float] = 0.7,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.model = (model or DEFAULT_CLAUDE_MODEL).strip()
        self.fallback_model = (fallback_model or DEFAULT_CLAUDE_FALLBACK_MODEL).strip()
        self.max_tokens = int(max_tokens or 1000)
        self.temperature = temperature

    async def generate(self, prompt: str) -> str:
        client = anthropic.AsyncAnthropic(api_key=self.api_key)
        try:
            try:
                message = await self._create(client, self.model, prompt)
            except (anthropic.NotFoundError, anthropic.BadRequestError) as exc:
                if not self.fallback_model or self.fallback_model == self.model:
                    raise
                LOGGER.info(
                    "Model %s not available (%s); trying fallback model %s",
                    self.model,
                    exc.__class__.__name__,
                    self.fallback_model,
                )
                message = await self._create(client, self.fallback_model, prompt)
        except anthropic.AnthropicError as exc:
            raise _classify_claude_error(exc) from exc
        finally:
            await client.close()

        text = _message_text(message).strip()
        if not text:
            raise BackendError("Claude returned an empty response", kind="empty", provider=self.name)
        return text

    async def _create(self, client: Any, model: str, prompt: str) -> Any:
        kwargs = {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            kwargs["temperature"] = float(self.temperature)
        return await client.messages.create(**kwargs)


def _message_text(message: Any) -> str:
    parts = []
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(getattr(block, "text", "") or "")
    return "".join(parts)


def _classify_claude_error(error: Exception) -> BackendError:
    """Map Anthropic SDK exceptions onto the backend error kinds."""

    if isinstance(error, anthropic.AuthenticationError):
        return BackendAuthError(
            "Authentication error: Invalid API key or unauthorized access",
            provider="claude",
        )
    if isinstance(error, anthropic.RateLimitError):
        return BackendRateLimitError(
            "Rate limit exceeded: Too many requests to Claude API",
            provider="claude",
        )
    if isinstance(error, anthropic.InternalServerError):
        return BackendServerError("Claude API server error: Please try again later", provider="claude")
    if isinstance(error, anthropic.APIConnectionError):
        return BackendServerError(f"Claude API unreachable: {error}", provider="claude")
    return BackendError(f"Claude API error: {error}", provider="claude")
