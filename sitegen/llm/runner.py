"""Adapters around hosted LLM providers (OpenAI-compatible chat completions)."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from http.client import HTTPException
from typing import Callable, Dict, Optional, Sequence, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import ProviderError

_AUTO = object()


@dataclass(frozen=True)
class ProviderPreset:
    """Default endpoint, model and credential lookup for a provider."""

    base_url: str
    model: str
    api_key_env: Tuple[str, ...]


PROVIDER_PRESETS: Dict[str, ProviderPreset] = {
    "openai": ProviderPreset(
        base_url="https://api.openai.com/v1",
        model="gpt-4o-mini",
        api_key_env=("OPENAI_API_KEY",),
    ),
    "cerebras": ProviderPreset(
        base_url="https://api.cerebras.ai/v1",
        model="llama3.1-8b",
        api_key_env=("CEREBRAS_API_KEY",),
    ),
    "gemini": ProviderPreset(
        base_url="https://generativelanguage.googleapis.com/v1beta/openai",
        model="gemini-1.5-flash",
        api_key_env=("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ),
    "anthropic": ProviderPreset(
        base_url="https://api.anthropic.com/v1",
        model="claude-3-5-haiku-latest",
        api_key_env=("ANTHROPIC_API_KEY",),
    ),
}


@dataclass
class LLMRequest:
    """Represents one inference request."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Executes prompts against an OpenAI-compatible chat completions endpoint."""

    provider = "openai"
    ENV_MODEL_KEYS: Tuple[str, ...] = ("SITEGEN_LLM_MODEL",)
    ENV_BASE_URL_KEYS: Tuple[str, ...] = ("SITEGEN_LLM_BASE_URL",)
    ENV_API_KEY_KEYS: Tuple[str, ...] = ("SITEGEN_LLM_API_KEY",)

    def __init__(
        self,
        provider: str | None = None,
        model: str | None = None,
        *,
        base_url: str | None | object = _AUTO,
        api_key: str | None | object = _AUTO,
        temperature: Optional[float] = 0.5,
        max_tokens: Optional[int] = 8000,
        request_timeout: Optional[float] = 300.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        if provider is not None:
            self.provider = provider.lower()
        if self.provider not in PROVIDER_PRESETS:
            raise ProviderError(f"Unsupported AI provider: {self.provider}")
        self.preset = PROVIDER_PRESETS[self.provider]
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.preset.model
        self.base_url = self._resolve_base_url(base_url)
        self.api_key = self._resolve_api_key(api_key)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner

    def run(self, prompt: str, *, system: str | None = None) -> str:
        """Send the prompt to the configured provider and return the response text."""
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        return self._runner(request)

    def _http_runner(self, request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": self._build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        if not request.api_key:
            raise ProviderError(f"No API key configured for provider '{self.provider}'")
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }

        response_payload = post_json(
            endpoint,
            payload,
            headers=headers,
            timeout=request.request_timeout,
            label=self.provider,
        )
        content = self._extract_content(response_payload)
        if not content:
            raise ProviderError(f"{self.provider} returned an empty response")
        return content.strip()

    @staticmethod
    def _build_messages(system: str | None, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: dict[str, object]) -> str:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_base_url(self, base_url: str | None | object) -> str:
        if isinstance(base_url, str) and base_url:
            return base_url.rstrip("/")
        env_value = self._first_env_value(self.ENV_BASE_URL_KEYS)
        if env_value:
            return env_value.rstrip("/")
        return self.preset.base_url

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is not _AUTO:
            return api_key  # type: ignore[return-value]
        return self._first_env_value(self.ENV_API_KEY_KEYS + self.preset.api_key_env)

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


def post_json(
    url: str,
    payload: dict[str, object],
    *,
    headers: dict[str, str],
    timeout: Optional[float],
    label: str,
) -> dict[str, object]:
    """POST ``payload`` as JSON and decode the JSON response."""
    data = json.dumps(payload).encode("utf-8")
    http_request = Request(url, data=data, headers=headers, method="POST")
    try:
        with urlopen(http_request, timeout=timeout or 300.0) as response:  # type: ignore[arg-type]
            raw = response.read()
    except HTTPError as exc:  # pragma: no cover - depends on runtime
        detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
        message = detail.strip() or exc.reason
        raise ProviderError(f"{label} request failed with status {exc.code}: {message}") from exc
    except URLError as exc:  # pragma: no cover - depends on runtime
        raise ProviderError(f"{label} request failed: {exc.reason}") from exc
    except (OSError, HTTPException) as exc:
        raise ProviderError(f"{label} request failed: {exc}") from exc

    try:
        decoded = json.loads(raw.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise ProviderError(f"{label} returned invalid JSON") from exc
    if not isinstance(decoded, dict):
        raise ProviderError(f"{label} returned an unexpected payload")
    return decoded


__all__ = ["LLMRequest", "LLMRunner", "PROVIDER_PRESETS", "ProviderPreset", "post_json"]
