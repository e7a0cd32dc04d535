import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

import anthropic
import httpx
import openai
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import api_handler
import claude_handler
import text_generator
from letterstudio import create_app
from letterstudio.config import TestConfig
from letterstudio.services.errors import BackendError, BackendUnavailableError
from letterstudio.services.generation import available_backends, get_generation_backend


@pytest.fixture
def app_ctx():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    ctx.pop()


def _status_error(error_cls, status_code):
    request = httpx.Request("POST", "https://example.invalid/v1")
    response = httpx.Response(status_code, request=request)
    return error_cls("failure", response=response, body=None)


def test_default_backend_without_key_is_unavailable(app_ctx):
    with pytest.raises(BackendUnavailableError) as excinfo:
        get_generation_backend()

    assert "(claude) is not available" in str(excinfo.value)
    assert excinfo.value.provider == "claude"


def test_unknown_backend_is_unavailable(app_ctx):
    with pytest.raises(BackendUnavailableError):
        get_generation_backend("gemini")


def test_configured_backends_are_built_and_cached(app_ctx):
    app_ctx.config["CLAUDE_API_KEY"] = "sk-ant-test"
    app_ctx.config["DEEPSEEK_API_KEY"] = "ds-test"

    claude = get_generation_backend()
    deepseek = get_generation_backend("DeepSeek")

    assert isinstance(claude, claude_handler.ClaudeGenerator)
    assert isinstance(deepseek, api_handler.OpenAICompatibleGenerator)
    assert deepseek.base_url == "https://api.deepseek.com/v1"
    assert deepseek.temperature == app_ctx.config["GENERATION_TEMPERATURE"]
    assert get_generation_backend("claude") is claude


def test_available_backends_reports_configuration(app_ctx):
    app_ctx.config["OPENAI_API_KEY"] = "sk-test"

    assert available_backends() == {"claude": False, "deepseek": False, "openai": True, "local": False}


class FakeAnthropicClient:
    def __init__(self, outcomes, calls):
        self._outcomes = outcomes
        self._calls = calls
        self.messages = SimpleNamespace(create=self._create)

    async def _create(self, **kwargs):
        self._calls.append(kwargs["model"])
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=outcome)])

    async def close(self):
        return None


def _patch_anthropic(monkeypatch, outcomes):
    calls = []
    monkeypatch.setattr(
        claude_handler.anthropic,
        "AsyncAnthropic",
        lambda **_: FakeAnthropicClient(outcomes, calls),
    )
    return calls


def test_claude_falls_back_when_model_missing(monkeypatch):
    calls = _patch_anthropic(monkeypatch, [_status_error(anthropic.NotFoundError, 404), " Fallback text "])
    generator = claude_handler.ClaudeGenerator(api_key="key", model="primary", fallback_model="backup")

    assert asyncio.run(generator.generate("Write a letter")) == "Fallback text"
    assert calls == ["primary", "backup"]


@pytest.mark.parametrize(
    "error_cls, status_code, kind",
    [
        (anthropic.AuthenticationError, 401, "auth"),
        (anthropic.RateLimitError, 429, "rate_limit"),
        (anthropic.InternalServerError, 500, "server"),
    ],
)
def test_claude_errors_are_classified(monkeypatch, error_cls, status_code, kind):
    _patch_anthropic(monkeypatch, [_status_error(error_cls, status_code)])
    generator = claude_handler.ClaudeGenerator(api_key="key")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(generator.generate("Write a letter"))

    assert excinfo.value.kind == kind
    assert excinfo.value.provider == "claude"


def test_claude_empty_reply_is_an_error(monkeypatch):
    _patch_anthropic(monkeypatch, ["   "])

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(claude_handler.ClaudeGenerator(api_key="key").generate("Write a letter"))

    assert excinfo.value.kind == "empty"


class FakeOpenAIClient:
    def __init__(self, outcome, seen):
        self._outcome = outcome
        self._seen = seen
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self._seen.append(kwargs)
        if isinstance(self._outcome, Exception):
            raise self._outcome
        message = SimpleNamespace(content=self._outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def close(self):
        return None


def test_openai_compatible_generator_returns_text(monkeypatch):
    seen = []
    clients = []

    def factory(**kwargs):
        clients.append(kwargs)
        return FakeOpenAIClient("  Dear team,  ", seen)

    monkeypatch.setattr(api_handler.openai, "AsyncOpenAI", factory)
    generator = api_handler.OpenAICompatibleGenerator(provider="deepseek", model_name="deepseek-chat", api_key="k")

    assert asyncio.run(generator.generate("Prompt")) == "Dear team,"
    assert clients[0]["base_url"] == "https://api.deepseek.com/v1"
    assert seen[0]["model"] == "deepseek-chat"


def test_openai_compatible_generator_maps_auth_error(monkeypatch):
    error = _status_error(openai.AuthenticationError, 401)
    monkeypatch.setattr(api_handler.openai, "AsyncOpenAI", lambda **_: FakeOpenAIClient(error, []))
    generator = api_handler.OpenAICompatibleGenerator(provider="openai", model_name="gpt-4o-mini", api_key="k")

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(generator.generate("Prompt"))

    assert excinfo.value.kind == "auth"


def test_local_generator_maps_load_failures(monkeypatch):
    generator = text_generator.LocalTextGenerator("/models/missing")
    monkeypatch.setattr(generator, "generate_response", lambda prompt: "Local answer")

    assert asyncio.run(generator.generate("Prompt")) == "Local answer"

    def broken(prompt):
        raise OSError("model directory not found")

    monkeypatch.setattr(generator, "generate_response", broken)

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(generator.generate("Prompt"))

    assert excinfo.value.kind == "server"
    assert excinfo.value.provider == "local"
