from __future__ import annotations

from .base import LLMProvider, ProviderResponse
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider


PROVIDERS: dict[str, type[LLMProvider]] = {
    "openrouter": OpenRouterProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def detect_provider_from_model(model: str, *, default_provider: str = "openrouter") -> str:
    """Infer provider from model id ("vendor/model" ids are routed through OpenRouter)."""
    lower = (model or "").strip().lower()

    if "/" in lower:
        return "openrouter"
    if lower.startswith("claude-"):
        return "anthropic"
    if lower.startswith(("gpt-", "o1-", "o3-", "o4-")):
        return "openai"

    return default_provider


__all__ = [
    "LLMProvider",
    "ProviderResponse",
    "AnthropicProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "PROVIDERS",
    "detect_provider_from_model",
]
