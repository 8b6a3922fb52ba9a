from __future__ import annotations

from typing import Any, Awaitable

from .base import LLMProvider


class OpenAIProvider(LLMProvider):
    """OpenAI Responses API."""

    name = "openai"
    pricing_per_million = {
        "gpt-4.1": {"input": 2.0, "output": 8.0},
        "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
        "gpt-4.1-nano": {"input": 0.10, "output": 0.40},
        "gpt-4o": {"input": 5.0, "output": 15.0},
        "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    }
    default_rates = {"input": 2.0, "output": 8.0}

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def _create(self, *, model, system, user, max_tokens, temperature) -> Awaitable[Any]:
        request = dict(model=model, input=user, max_output_tokens=max_tokens, temperature=temperature)
        if system:
            request["instructions"] = system
        return self.client.responses.create(**request)

    def _extract_text(self, response: Any) -> str:
        return getattr(response, "output_text", "")
