from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional


@dataclass(frozen=True)
class ModelTier:
    name: str
    description: str
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class ModelSelection:
    model: str
    description: str
    temperature: float
    max_tokens: int


# Ordered by speed/cost.
TIERS: Dict[str, ModelTier] = {
    "very_fast": ModelTier("very_fast", "Fastest, cheapest - for bulk categorization", 0.3, 1000),
    "fast": ModelTier("fast", "Fast with good quality", 0.4, 2000),
    "balanced": ModelTier("balanced", "Good balance of speed and quality", 0.5, 4000),
    "high_reasoning": ModelTier("high_reasoning", "Best reasoning capabilities", 0.3, 4000),
    "max_quality": ModelTier("max_quality", "Highest quality output", 0.4, 4000),
}

TIER_MODELS: Dict[str, Dict[str, str]] = {
    "openrouter": {
        "very_fast": "google/gemini-2.5-flash-lite",
        "fast": "google/gemini-2.5-flash",
        "balanced": "google/gemini-2.5-flash",
        "high_reasoning": "google/gemini-2.5-flash",
        "max_quality": "google/gemini-2.5-flash",
    },
    "openai": {
        "very_fast": "gpt-4.1-nano",
        "fast": "gpt-4.1-mini",
        "balanced": "gpt-4.1-mini",
        "high_reasoning": "gpt-4.1",
        "max_quality": "gpt-4.1",
    },
    "anthropic": {
        "very_fast": "claude-haiku-4-5-20251001",
        "fast": "claude-haiku-4-5-20251001",
        "balanced": "claude-sonnet-4-5-20250929",
        "high_reasoning": "claude-sonnet-4-5-20250929",
        "max_quality": "claude-opus-4-6",
    },
}

# Parameter overrides applicable to any tier, applied in order.
PARAM_OVERRIDES: Dict[str, Dict[str, float]] = {
    "reasoning": {"temperature": 0.2, "max_tokens": 4000},
    "creative": {"temperature": 0.8, "max_tokens": 4000},
    "concise": {"temperature": 0.3, "max_tokens": 500},
}

ANALYSIS_TIERS = {
    "categorization": "very_fast",
    "detailed": "high_reasoning",
    "summary": "balanced",
}

DIRECT_MODEL_TEMPERATURE = 0.4
DIRECT_MODEL_MAX_TOKENS = 4000


def _normalize(tier: str) -> str:
    return (tier or "").strip().lower()


def resolve_model(
    tier: str,
    *,
    provider: str = "openrouter",
    overrides: Iterable[str] = (),
    model_overrides: Optional[Mapping[str, str]] = None,
) -> ModelSelection:
    """
    Resolve a tier name (or a direct "vendor/model" id) to a model and params.

    `model_overrides` maps tier names to model ids and wins over the
    provider's defaults. Unknown override names are ignored.
    """
    if "/" in (tier or ""):
        selection = {
            "model": tier.strip(),
            "description": "Custom model",
            "temperature": DIRECT_MODEL_TEMPERATURE,
            "max_tokens": DIRECT_MODEL_MAX_TOKENS,
        }
    else:
        name = _normalize(tier)
        config = TIERS.get(name)
        if config is None:
            raise ValueError(
                f"Unknown model tier: {tier}. Available tiers: {', '.join(TIERS)}"
            )
        defaults = TIER_MODELS.get(provider, TIER_MODELS["openrouter"])
        model = (model_overrides or {}).get(name) or defaults[name]
        selection = {
            "model": model,
            "description": config.description,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

    for override in overrides:
        params = PARAM_OVERRIDES.get(override)
        if params:
            selection.update(params)

    return ModelSelection(
        model=str(selection["model"]),
        description=str(selection["description"]),
        temperature=float(selection["temperature"]),
        max_tokens=int(selection["max_tokens"]),
    )


def list_tiers(provider: str = "openrouter") -> List[dict]:
    models = TIER_MODELS.get(provider, TIER_MODELS["openrouter"])
    return [
        {"name": name, "model": models[name], "description": tier.description}
        for name, tier in TIERS.items()
    ]
