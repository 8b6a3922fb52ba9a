from __future__ import annotations

from typing import Any, Awaitable

from .base import LLMProvider

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(LLMProvider):
    """OpenRouter through its OpenAI-compatible Chat Completions endpoint."""

    name = "openrouter"
    input_usage_field = "prompt_tokens"
    output_usage_field = "completion_tokens"
    pricing_per_million = {
        "google/gemini-2.5-flash-lite": {"input": 0.10, "output": 0.40},
        "google/gemini-2.5-flash": {"input": 0.30, "output": 2.50},
        "google/gemini-2.5-pro": {"input": 1.25, "output": 10.0},
    }
    default_rates = {"input": 0.30, "output": 2.50}

    def __init__(self, api_key: str, *, base_url: str = OPENROUTER_BASE_URL) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def _create(self, *, model, system, user, max_tokens, temperature) -> Awaitable[Any]:
        messages = [{"role": "user", "content": user}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        return self.client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    def _extract_text(self, response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return getattr(message, "content", "") or ""
