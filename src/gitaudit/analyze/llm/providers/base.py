from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional


@dataclass(frozen=True)
class ProviderResponse:
    content: str
    input_tokens: int
    output_tokens: int
    model: str


def _token_count(usage: Any, field: str) -> int:
    if usage is None:
        return 0
    return int(getattr(usage, field, 0) or 0)


class LLMProvider(ABC):
    """
    One SDK behind a uniform `call`.

    Subclasses start the SDK request in `_create` and pull the text out of the
    SDK response in `_extract_text`. Token counts are read from
    `response.usage` using the subclass's usage field names.
    """

    name: str = ""
    input_usage_field = "input_tokens"
    output_usage_field = "output_tokens"

    # USD per million tokens, keyed by model id.
    pricing_per_million: Dict[str, Dict[str, float]] = {}
    default_rates: Dict[str, float] = {"input": 0.0, "output": 0.0}

    async def call(
        self,
        *,
        model: str,
        system: Optional[str],
        user: str,
        max_tokens: int,
        temperature: float,
        timeout: int,
    ) -> ProviderResponse:
        response = await asyncio.wait_for(
            self._create(
                model=model,
                system=system,
                user=user,
                max_tokens=max_tokens,
                temperature=temperature,
            ),
            timeout=timeout,
        )
        usage = getattr(response, "usage", None)
        return ProviderResponse(
            content=self._extract_text(response) or "",
            input_tokens=_token_count(usage, self.input_usage_field),
            output_tokens=_token_count(usage, self.output_usage_field),
            model=model,
        )

    @abstractmethod
    def _create(
        self,
        *,
        model: str,
        system: Optional[str],
        user: str,
        max_tokens: int,
        temperature: float,
    ) -> Awaitable[Any]:
        ...

    @abstractmethod
    def _extract_text(self, response: Any) -> str:
        ...

    def estimate_cost(self, model: str, tokens_in: int, tokens_out: int) -> float:
        rates = self.pricing_per_million.get(model, self.default_rates)
        return (tokens_in * rates["input"] + tokens_out * rates["output"]) / 1_000_000
