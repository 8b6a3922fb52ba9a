from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from ...errors import CompletionError, ConfigError, MalformedResponse
from ...logging import AuditLogger
from .model_tiers import ModelSelection, resolve_model
from .providers import (
    AnthropicProvider,
    OpenAIProvider,
    OpenRouterProvider,
    detect_provider_from_model,
)
from .response_parser import ResponseParser
from .usage import LLMUsage, UsageTracker

if TYPE_CHECKING:
    from ...config import GitAuditConfig


@dataclass
class LLMResponse:
    content: str
    usage: LLMUsage
    success: bool
    error: Optional[str] = None

    def raise_for_error(self) -> None:
        if not self.success:
            raise CompletionError(self.error or "LLM completion failed")


@dataclass
class StructuredResponse:
    data: dict
    usage: LLMUsage
    success: bool
    error: Optional[str] = None
    malformed: bool = False
    raw: str = field(default="", repr=False)

    def raise_for_error(self) -> None:
        if self.success:
            return
        if self.malformed:
            raise MalformedResponse(self.error or "Malformed response")
        raise CompletionError(self.error or "LLM completion failed")


class LLMClient:
    """LLM SDK wrapper with tiered model selection, retry and usage tracking."""

    def __init__(
        self,
        *,
        llm_provider: str = "openrouter",
        openrouter_api_key: str = "",
        openai_api_key: str = "",
        anthropic_api_key: str = "",
        model_overrides: Optional[Mapping[str, str]] = None,
        timeout_seconds: int = 120,
        max_retries: int = 2,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self.llm_provider = llm_provider
        self.openrouter_api_key = openrouter_api_key
        self.openai_api_key = openai_api_key
        self.anthropic_api_key = anthropic_api_key
        self.model_overrides = dict(model_overrides or {})
        self.timeout = timeout_seconds
        self.max_retries = max(1, max_retries)
        self.logger = logger
        self.parser = ResponseParser()
        self._providers: dict[str, object] = {}

    @classmethod
    def from_config(cls, config: "GitAuditConfig", logger: Optional[AuditLogger] = None) -> "LLMClient":
        return cls(
            llm_provider=config.llm_provider,
            openrouter_api_key=config.openrouter_api_key.get_secret_value(),
            openai_api_key=config.openai_api_key.get_secret_value(),
            anthropic_api_key=config.anthropic_api_key.get_secret_value(),
            model_overrides=config.model_overrides(),
            timeout_seconds=config.llm_timeout_seconds,
            max_retries=config.llm_max_retries,
            logger=logger,
        )

    def _get_provider(self, provider_name: str):
        if provider_name in self._providers:
            return self._providers[provider_name]

        if provider_name == "openrouter":
            provider = OpenRouterProvider(api_key=self.openrouter_api_key)
        elif provider_name == "openai":
            provider = OpenAIProvider(api_key=self.openai_api_key)
        elif provider_name == "anthropic":
            provider = AnthropicProvider(api_key=self.anthropic_api_key)
        else:
            raise ConfigError(f"Unknown LLM provider: {provider_name}")

        self._providers[provider_name] = provider
        return provider

    def select_model(self, tier: str, overrides: Iterable[str] = ()) -> ModelSelection:
        return resolve_model(
            tier,
            provider=self.llm_provider,
            overrides=overrides,
            model_overrides=self.model_overrides,
        )

    async def complete(
        self,
        prompt: str,
        tier: str = "balanced",
        *,
        system: Optional[str] = None,
        overrides: Iterable[str] = (),
        usage: Optional[UsageTracker] = None,
        operation: str = "",
    ) -> LLMResponse:
        """
        Run a text completion on the model selected by `tier`.

        Never raises for remote failures: the returned response carries
        `success=False` and the error message instead. Successful calls are
        recorded on `usage` when given.
        """
        selection = self.select_model(tier, overrides)
        response = await self._call_with_retry(
            selection,
            system,
            prompt,
            operation=operation or f"generate:{tier}",
        )
        if response.success and usage is not None:
            usage.track(response.usage)
        return response

    async def complete_structured(
        self,
        prompt: str,
        tier: str = "balanced",
        *,
        system: Optional[str] = None,
        overrides: Iterable[str] = (),
        usage: Optional[UsageTracker] = None,
        operation: str = "",
    ) -> StructuredResponse:
        """Run a completion and parse a JSON object out of its text."""
        response = await self.complete(
            prompt,
            tier,
            system=system,
            overrides=overrides,
            usage=usage,
            operation=operation or f"generate_json:{tier}",
        )
        if not response.success:
            return StructuredResponse(
                data={},
                usage=response.usage,
                success=False,
                error=response.error,
                raw=response.content,
            )
        try:
            data = self.parser.extract_json(response.content)
        except MalformedResponse as exc:
            return StructuredResponse(
                data={},
                usage=response.usage,
                success=False,
                error=f"MalformedResponse: {exc}",
                malformed=True,
                raw=response.content,
            )
        return StructuredResponse(
            data=data,
            usage=response.usage,
            success=True,
            raw=response.content,
        )

    async def _call_with_retry(
        self,
        selection: ModelSelection,
        system: Optional[str],
        user: str,
        *,
        operation: str,
    ) -> LLMResponse:
        """Call provider API with retry on transient failures."""
        last_error: Optional[str] = None
        model = selection.model
        provider_name = detect_provider_from_model(model, default_provider=self.llm_provider)
        provider = self._get_provider(provider_name)

        for attempt in range(self.max_retries):
            try:
                start = time.time()
                response = await provider.call(
                    model=model,
                    system=system,
                    user=user,
                    max_tokens=selection.max_tokens,
                    temperature=selection.temperature,
                    timeout=self.timeout,
                )
                latency_ms = int((time.time() - start) * 1000)
                input_tokens = int(getattr(response, "input_tokens", 0) or 0)
                output_tokens = int(getattr(response, "output_tokens", 0) or 0)
                usage = LLMUsage(
                    model=model,
                    tokens_in=input_tokens,
                    tokens_out=output_tokens,
                    cost_usd=provider.estimate_cost(model, input_tokens, output_tokens),
                    latency_ms=latency_ms,
                    provider=provider_name,
                    operation=operation,
                )
                content = getattr(response, "content", "") or ""
                return LLMResponse(content=content, usage=usage, success=True)
            except asyncio.TimeoutError:
                last_error = f"Timeout after {self.timeout}s"
            except Exception as exc:
                last_error = str(exc) or type(exc).__name__

            if self.logger is not None:
                self.logger.debug(
                    "llm_call_failed",
                    model=model,
                    attempt=attempt + 1,
                    error=last_error,
                )
            if attempt < self.max_retries - 1:
                await asyncio.sleep(2**attempt)

        return LLMResponse(
            content="",
            usage=LLMUsage(model, 0, 0, 0.0, 0, provider=provider_name, operation=operation),
            success=False,
            error=last_error,
        )

    def estimate_cost(self, model: str, tokens_in: int, tokens_out: int) -> float:
        """Estimate cost in USD based on model pricing."""
        provider_name = detect_provider_from_model(model, default_provider=self.llm_provider)
        provider = self._get_provider(provider_name)
        return provider.estimate_cost(model, tokens_in, tokens_out)
