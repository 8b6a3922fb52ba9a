from __future__ import annotations

from typing import Any, Awaitable

from .base import LLMProvider


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API."""

    name = "anthropic"
    pricing_per_million = {
        "claude-opus-4-6": {"input": 15.0, "output": 75.0},
        "claude-sonnet-4-5-20250929": {"input": 3.0, "output": 15.0},
        "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.0},
    }
    default_rates = {"input": 3.0, "output": 15.0}

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self._client = None

    @property
    def client(self):
        if self._client is None:
            import anthropic

            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    def _create(self, *, model, system, user, max_tokens, temperature) -> Awaitable[Any]:
        request = dict(
            model=model,
            messages=[{"role": "user", "content": user}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if system:
            request["system"] = system
        return self.client.messages.create(**request)

    def _extract_text(self, response: Any) -> str:
        # Concatenate text blocks; tool-use and thinking blocks have no `text`.
        blocks = getattr(response, "content", None) or []
        return "".join(getattr(block, "text", "") or "" for block in blocks)
