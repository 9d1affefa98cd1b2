"""Hosted LLM provider adapters."""

from __future__ import annotations

from typing import Optional

from ..config import LLMConfig
from ..errors import ProviderError
from .anthropic import AnthropicRunner
from .parser import GenerationPayload, parse_generation_response
from .runner import PROVIDER_PRESETS, LLMRequest, LLMRunner


def create_runner(provider: str, config: Optional[LLMConfig] = None) -> LLMRunner:
    """Instantiate the runner for ``provider`` using optional config overrides."""
    name = provider.strip().lower()
    if name not in PROVIDER_PRESETS:
        raise ProviderError(f"Unsupported AI provider: {provider}")
    runner_cls = AnthropicRunner if name == "anthropic" else LLMRunner
    kwargs: dict[str, object] = {}
    if config is not None and config.provider == name:
        if config.base_url:
            kwargs["base_url"] = config.base_url
        if config.api_key:
            kwargs["api_key"] = config.api_key
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if config.max_tokens is not None:
            kwargs["max_tokens"] = config.max_tokens
        if config.request_timeout is not None:
            kwargs["request_timeout"] = config.request_timeout
        return runner_cls(name, config.model, **kwargs)  # type: ignore[arg-type]
    return runner_cls(name)


__all__ = [
    "AnthropicRunner",
    "GenerationPayload",
    "LLMRequest",
    "LLMRunner",
    "PROVIDER_PRESETS",
    "create_runner",
    "parse_generation_response",
]
