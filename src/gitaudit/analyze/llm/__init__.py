"""LLM completion utilities."""

from .llm_client import LLMClient, LLMResponse, StructuredResponse
from .model_tiers import ANALYSIS_TIERS, ModelSelection, list_tiers, resolve_model
from .response_parser import Classification, ResponseParser
from .usage import LLMUsage, UsageTotals, UsageTracker, estimate_tokens

__all__ = [
    "ANALYSIS_TIERS",
    "Classification",
    "LLMClient",
    "LLMResponse",
    "LLMUsage",
    "ModelSelection",
    "ResponseParser",
    "StructuredResponse",
    "UsageTotals",
    "UsageTracker",
    "estimate_tokens",
    "list_tiers",
    "resolve_model",
]
