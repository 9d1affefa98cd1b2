"""Tests for the hosted LLM runner."""

from __future__ import annotations

import json
from http.client import IncompleteRead

import pytest

from sitegen.errors import ProviderError
from sitegen.llm.runner import LLMRunner


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def read(self):
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


@pytest.fixture(autouse=True)
def _clear_provider_env(monkeypatch) -> None:
    for key in (
        "SITEGEN_LLM_MODEL",
        "SITEGEN_LLM_BASE_URL",
        "SITEGEN_LLM_API_KEY",
        "OPENAI_API_KEY",
        "CEREBRAS_API_KEY",
        "GEMINI_API_KEY",
        "GOOGLE_API_KEY",
        "ANTHROPIC_API_KEY",
    ):
        monkeypatch.delenv(key, raising=False)


def test_llm_runner_constructs_request() -> None:
    captured = {}

    def fake_runner(request):
        captured["prompt"] = request.prompt
        captured["system"] = request.system
        captured["model"] = request.model
        captured["temperature"] = request.temperature
        captured["max_tokens"] = request.max_tokens
        captured["base_url"] = request.base_url
        captured["api_key"] = request.api_key
        captured["request_timeout"] = request.request_timeout
        return "response"

    runner = LLMRunner(
        "cerebras",
        model="custom-model",
        api_key="secret",
        temperature=0.15,
        max_tokens=256,
        request_timeout=42.0,
        runner=fake_runner,
    )
    result = runner.run("Build a bakery site", system="system message")

    assert result == "response"
    assert captured == {
        "prompt": "Build a bakery site",
        "system": "system message",
        "model": "custom-model",
        "temperature": 0.15,
        "max_tokens": 256,
        "base_url": "https://api.cerebras.ai/v1",
        "api_key": "secret",
        "request_timeout": 42.0,
    }


def test_llm_runner_http_posts_payload(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": '  {"files": []}  '}}]})

    monkeypatch.setattr("sitegen.llm.runner.urlopen", fake_urlopen)

    runner = LLMRunner(
        "openai",
        model="gpt-4o-mini",
        base_url="https://proxy.example.com/v1/",
        api_key="test-key",
        temperature=0.05,
        max_tokens=128,
        request_timeout=12.0,
    )
    result = runner.run("Make a portfolio", system="Return JSON")

    assert result == '{"files": []}'
    assert captured["url"] == "https://proxy.example.com/v1/chat/completions"
    assert captured["headers"]["authorization"] == "Bearer test-key"
    assert captured["timeout"] == 12.0
    assert captured["payload"] == {
        "model": "gpt-4o-mini",
        "messages": [
            {"role": "system", "content": "Return JSON"},
            {"role": "user", "content": "Make a portfolio"},
        ],
        "temperature": 0.05,
        "max_tokens": 128,
    }


def test_llm_runner_uses_provider_presets_and_env(monkeypatch) -> None:
    monkeypatch.setenv("GOOGLE_API_KEY", "google-key")

    runner = LLMRunner("Gemini")

    assert runner.provider == "gemini"
    assert runner.base_url == "https://generativelanguage.googleapis.com/v1beta/openai"
    assert runner.model == "gemini-1.5-flash"
    assert runner.api_key == "google-key"


def test_llm_runner_env_overrides_preset(monkeypatch) -> None:
    monkeypatch.setenv("SITEGEN_LLM_MODEL", "env-model")
    monkeypatch.setenv("SITEGEN_LLM_BASE_URL", "https://env.example.com/v1/")
    monkeypatch.setenv("SITEGEN_LLM_API_KEY", "env-key")
    monkeypatch.setenv("OPENAI_API_KEY", "provider-key")

    runner = LLMRunner("openai")

    assert runner.model == "env-model"
    assert runner.base_url == "https://env.example.com/v1"
    assert runner.api_key == "env-key"


def test_llm_runner_rejects_unknown_provider() -> None:
    with pytest.raises(ProviderError, match="Unsupported AI provider"):
        LLMRunner("mystery")


def test_llm_runner_requires_api_key(monkeypatch) -> None:
    def fail_urlopen(*_args, **_kwargs):  # pragma: no cover - must not be reached
        raise AssertionError("urlopen should not be called")

    monkeypatch.setattr("sitegen.llm.runner.urlopen", fail_urlopen)

    runner = LLMRunner("cerebras")

    with pytest.raises(ProviderError, match="No API key"):
        runner.run("hello")


def test_llm_runner_rejects_empty_completion(monkeypatch) -> None:
    monkeypatch.setattr(
        "sitegen.llm.runner.urlopen",
        lambda request, timeout=None: FakeResponse({"choices": []}),
    )

    runner = LLMRunner("openai", api_key="key")

    with pytest.raises(ProviderError, match="empty response"):
        runner.run("hello")


def test_llm_runner_accepts_text_completions(monkeypatch) -> None:
    monkeypatch.setattr(
        "sitegen.llm.runner.urlopen",
        lambda request, timeout=None: FakeResponse({"choices": [{"text": "legacy"}]}),
    )

    assert LLMRunner("openai", api_key="key").run("hello") == "legacy"


class StalledResponse(FakeResponse):
    def __init__(self, error: BaseException) -> None:
        super().__init__({})
        self.error = error

    def read(self):
        raise self.error


@pytest.mark.parametrize(
    "error",
    [TimeoutError("The read operation timed out"), IncompleteRead(b"{\"cho")],
)
def test_llm_runner_wraps_transport_failures(monkeypatch, error) -> None:
    monkeypatch.setattr(
        "sitegen.llm.runner.urlopen",
        lambda request, timeout=None: StalledResponse(error),
    )

    runner = LLMRunner("openai", api_key="key")

    with pytest.raises(ProviderError, match="request failed") as excinfo:
        runner.run("hello")
    assert excinfo.value.__cause__ is error


def test_llm_runner_wraps_connection_errors(monkeypatch) -> None:
    def refuse(request, timeout=None):
        raise ConnectionResetError("Connection reset by peer")

    monkeypatch.setattr("sitegen.llm.runner.urlopen", refuse)

    with pytest.raises(ProviderError, match="Connection reset"):
        LLMRunner("openai", api_key="key").run("hello")
