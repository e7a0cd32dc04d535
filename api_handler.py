# api_handler.py
from __future__ import annotations
from typing import Any, List, Optional

import openai

from letterstudio.services.errors import (
    BackendAuthError,
    BackendError,
    BackendRateLimitError,
    BackendServerError,
)
from letterstudio.services.generation import GenerationBackend

DEFAULT_BASE_URLS = {
    "deepseek": "https://api.deepseek.com/v1",
}


class OpenAICompatibleGenerator(GenerationBackend):
    """
    Chat Completions backend for any OpenAI-compatible endpoint.

    - provider="openai"   → api.openai.com with the configured model
    - provider="deepseek" → DeepSeek's OpenAI-compatible endpoint

    A fresh async client is built per call so the backend can be shared
    across requests that each run their own event loop.
    """

    def __init__(
        self,
        *,
        provider: str,
        model_name: str,
        api_key: str,
        base_url: Optional[str] = None,
        default_max_tokens: int = 1000,
        temperature: Optional[float] = None,
    ) -> None:
        self.name = (provider or "openai").strip().lower()
        self.model_name = (model_name or "").strip()
        self.api_key = (api_key or "").strip()
        self.base_url = (base_url or DEFAULT_BASE_URLS.get(self.name) or "").strip() or None
        self.default_max_tokens = int(default_max_tokens or 1000)
        self.temperature = temperature

    # ---------------- public API ----------------
    async def generate(self, prompt: str) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("prompt must be a non-empty string.")

        kwargs = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.default_max_tokens,
            "n": 1,
        }
        if self.temperature is not None:
            kwargs["temperature"] = float(self.temperature)

        client = openai.AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        try:
            resp = await client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            raise self._classify_error(exc) from exc
        finally:
            await client.close()

        text = self._extract_text_from_chat(resp).strip()
        if text:
            return text
        snippet = self._shorten_debug(str(resp))
        raise BackendError(
            f"Chat completion returned no text. Raw response (truncated): {snippet}",
            kind="empty",
            provider=self.name,
        )

    # ---------------- error mapping ----------------
    def _classify_error(self, exc: Exception) -> BackendError:
        if isinstance(exc, openai.AuthenticationError):
            return BackendAuthError(
                "Authentication error: Invalid API key or unauthorized access",
                provider=self.name,
            )
        if isinstance(exc, openai.RateLimitError):
            return BackendRateLimitError(
                f"Rate limit exceeded: Too many requests to the {self.name} API",
                provider=self.name,
            )
        if isinstance(exc, openai.InternalServerError):
            return BackendServerError(
                f"{self.name} API server error: Please try again later",
                provider=self.name,
            )
        if isinstance(exc, openai.APIConnectionError):
            return BackendServerError(f"{self.name} API unreachable: {exc}", provider=self.name)
        return BackendError(f"{self.name} API error: {exc}", provider=self.name)

    # ---------------- extractors ----------------
    def _extract_text_from_chat(self, resp: Any) -> str:
        choices = getattr(resp, "choices", []) or []
        if not choices:
            return ""
        first = choices[0]
        msg = getattr(first, "message", None)
        if isinstance(msg, dict):
            content = msg.get("content")
        else:
            content = getattr(msg, "content", None)
        if isinstance(content, list):
            parts: List[str] = []
            for p in content:
                if isinstance(p, dict) and p.get("type") == "text":
                    parts.append(str(p.get("text") or ""))
            return "\n".join([p for p in parts if p])
        return str(content or getattr(first, "text", "") or "")

    @staticmethod
    def _shorten_debug(s: str, limit: int = 1200) -> str:
        s = s.replace("\n", " ")
        return (s[:limit] + "…") if len(s) > limit else s
