from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from gitaudit.analyze.aggregate import categorize_work, get_stats, summarize
from gitaudit.analyze.llm import LLMResponse, LLMUsage, UsageTracker
from gitaudit.constants import CATEGORIES
from gitaudit.errors import CompletionError, SynthesisError
from gitaudit.models import Analysis, Batch, Commit, RepoMeta


def _analysis(
    category: str,
    importance: int,
    *,
    commits: int = 1,
    detailed: bool = False,
    description: str = "work",
    when: datetime = datetime(2024, 1, 15, tzinfo=timezone.utc),
) -> Analysis:
    batch = Batch(
        commits=tuple(Commit(sha=f"s{i}", message="m", date=when) for i in range(commits)),
        start_date=when,
        end_date=when,
        category=category,
    )
    return Analysis(
        batch=batch,
        category=category,
        description=description,
        importance=importance,
        detailed_analysis="details" if detailed else None,
    )


def _usage(tokens_in: int = 50, tokens_out: int = 25) -> LLMUsage:
    return LLMUsage(model="m", tokens_in=tokens_in, tokens_out=tokens_out, cost_usd=0.01, latency_ms=3)


def test_get_stats_counts() -> None:
    analyses = [
        _analysis("feature", 4, commits=3, detailed=True),
        _analysis("bugfix", 3, commits=2),
        _analysis("feature", 1, commits=1),
        _analysis("mystery", 2, commits=4),
    ]

    stats = get_stats(analyses)

    assert stats.total_batches == 4
    assert stats.total_commits == 10
    assert stats.important_count == 2
    assert stats.detailed_count == 1
    assert stats.by_category["feature"] == 2
    assert stats.by_category["bugfix"] == 1
    assert stats.by_category["other"] == 1
    assert set(stats.by_category) == set(CATEGORIES)


def test_get_stats_is_idempotent() -> None:
    analyses = [_analysis("docs", 2), _analysis("test", 5, detailed=True)]
    assert get_stats(analyses) == get_stats(analyses)
    assert get_stats(analyses).to_dict() == get_stats(list(analyses)).to_dict()


def test_get_stats_empty() -> None:
    stats = get_stats([])
    assert stats.total_batches == 0
    assert stats.total_commits == 0
    assert sum(stats.by_category.values()) == 0


def test_categorize_work_folds_unknown_labels() -> None:
    grouped = categorize_work([_analysis("feature", 3), _analysis("unknown", 1)])
    assert list(grouped) == list(CATEGORIES)
    assert len(grouped["feature"]) == 1
    assert len(grouped["other"]) == 1
    assert grouped["docs"] == []


@pytest.mark.anyio
async def test_summarize_returns_text_and_cumulative_usage() -> None:
    usage = UsageTracker()
    usage.track(_usage(100, 10))
    response = LLMResponse(content="  ## Overview\nI built things.  ", usage=_usage(40, 60), success=True)

    async def _complete(prompt, tier, *, usage=None, **kwargs):
        usage.track(response.usage)
        return response

    client = SimpleNamespace(complete=AsyncMock(side_effect=_complete))

    summary = await summarize(
        [_analysis("feature", 4, detailed=True)],
        RepoMeta(name="widgets", description="Widget store", languages=("Python",)),
        client=client,
        usage=usage,
    )

    assert summary.text == "## Overview\nI built things."
    assert summary.usage.tokens_in == 40
    assert summary.total_usage.call_count == 2
    assert summary.total_usage.tokens_in == 140
    assert summary.total_usage.tokens_out == 70
    call = client.complete.await_args
    assert call.args[1] == "balanced"
    assert "Repository: widgets" in call.args[0]
    assert "Languages: Python" in call.args[0]


@pytest.mark.anyio
async def test_summarize_failure_propagates() -> None:
    failed = LLMResponse(content="", usage=_usage(0, 0), success=False, error="upstream 503")
    client = SimpleNamespace(complete=AsyncMock(return_value=failed))

    with pytest.raises(SynthesisError, match="upstream 503"):
        await summarize([_analysis("feature", 4)], RepoMeta(name="widgets"), client=client)


@pytest.mark.anyio
async def test_summarize_empty_text_is_a_failure() -> None:
    empty = LLMResponse(content="   ", usage=_usage(), success=True)
    client = SimpleNamespace(complete=AsyncMock(return_value=empty))

    with pytest.raises(CompletionError):
        await summarize([_analysis("docs", 1)], RepoMeta(name="widgets"), client=client)
