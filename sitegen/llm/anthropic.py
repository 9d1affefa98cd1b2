"""Adapter for the Anthropic Messages API."""

from __future__ import annotations

from ..errors import ProviderError
from .runner import LLMRequest, LLMRunner, post_json

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicRunner(LLMRunner):
    """Executes prompts against the Anthropic Messages API."""

    provider = "anthropic"

    def _http_runner(self, request: LLMRequest) -> str:
        if not request.api_key:
            raise ProviderError("No API key configured for provider 'anthropic'")
        payload: dict[str, object] = {
            "model": request.model,
            "max_tokens": request.max_tokens or 8000,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system:
            payload["system"] = request.system
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        response_payload = post_json(
            f"{request.base_url}/messages",
            payload,
            headers={
                "Content-Type": "application/json",
                "x-api-key": request.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            timeout=request.request_timeout,
            label="anthropic",
        )
        content = self._extract_text_blocks(response_payload)
        if not content:
            raise ProviderError("anthropic returned an empty response")
        return content.strip()

    @staticmethod
    def _extract_text_blocks(payload: dict[str, object]) -> str:
        blocks = payload.get("content")
        if not isinstance(blocks, list):
            return ""
        parts = [
            block["text"]
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        return "".join(parts)


__all__ = ["ANTHROPIC_VERSION", "AnthropicRunner"]
