from __future__ import annotations

import pytest

from gitaudit.analyze.llm.model_tiers import ANALYSIS_TIERS, TIERS, list_tiers, resolve_model


def test_resolve_default_tier() -> None:
    selection = resolve_model("high_reasoning")
    assert selection.model == "google/gemini-2.5-flash"
    assert selection.temperature == 0.3
    assert selection.max_tokens == 4000


def test_resolve_per_provider() -> None:
    assert resolve_model("very_fast", provider="openai").model == "gpt-4.1-nano"
    assert resolve_model("max_quality", provider="anthropic").model == "claude-opus-4-6"


def test_direct_model_id() -> None:
    selection = resolve_model("meta-llama/llama-3.1-70b-instruct")
    assert selection.model == "meta-llama/llama-3.1-70b-instruct"
    assert selection.temperature == 0.4
    assert selection.max_tokens == 4000


def test_param_overrides_apply_in_order() -> None:
    selection = resolve_model("balanced", overrides=["creative", "concise", "unknown"])
    assert selection.temperature == 0.3
    assert selection.max_tokens == 500


def test_model_overrides_win() -> None:
    selection = resolve_model("fast", model_overrides={"fast": "mistralai/mistral-small"})
    assert selection.model == "mistralai/mistral-small"


def test_unknown_tier_raises() -> None:
    with pytest.raises(ValueError, match="Unknown model tier"):
        resolve_model("ultra")


def test_analysis_tiers_and_listing() -> None:
    assert ANALYSIS_TIERS == {
        "categorization": "very_fast",
        "detailed": "high_reasoning",
        "summary": "balanced",
    }
    assert [t["name"] for t in list_tiers()] == list(TIERS)
