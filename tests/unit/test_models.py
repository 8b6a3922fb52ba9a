from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gitaudit.analyze.llm.usage import LLMUsage, UsageTracker, estimate_tokens
from gitaudit.models import EPOCH, ChangeSet, Commit, RepoRef
from gitaudit.utils import first_line, parse_iso8601


def test_commit_from_api() -> None:
    commit = Commit.from_api(
        {
            "sha": "abc",
            "commit": {"message": "feat: x\n\nbody", "author": {"name": "Dev", "date": "2024-01-01T12:00:00Z"}},
            "author": None,
            "parents": [{"sha": "p1"}],
            "stats": {"additions": 3, "deletions": 1},
        }
    )
    assert commit.first_line == "feat: x"
    assert commit.date == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    assert commit.author_login is None
    assert commit.is_merge is False
    assert commit.stats.total == 4


def test_commit_without_date_sorts_oldest() -> None:
    assert Commit.from_api({"sha": "x", "commit": {}}).date == EPOCH


@pytest.mark.parametrize("value", ["octo", "octo/", "/widgets", "a/b/c", ""])
def test_repo_ref_rejects_bad_format(value: str) -> None:
    with pytest.raises(ValueError):
        RepoRef.parse(value)


def test_messages_only_change_set() -> None:
    commits = (Commit(sha="a", message="m1", date=EPOCH), Commit(sha="b", message="m2", date=EPOCH))
    changes = ChangeSet.messages_only(commits)
    assert changes.kind == "messages_only"
    assert [m.sha for m in changes.messages] == ["a", "b"]
    assert changes.stats is None


def test_parse_iso8601() -> None:
    assert parse_iso8601("2024-03-01T00:00:00+02:00").utcoffset().total_seconds() == 7200
    assert parse_iso8601("2024-03-01T00:00:00").tzinfo is timezone.utc
    assert parse_iso8601("not a date") is None
    assert parse_iso8601(None) is None
    assert first_line("  title  \nbody") == "title"


def test_usage_tracker_totals_and_reset() -> None:
    usage = UsageTracker()
    usage.track(LLMUsage("m", 10, 5, 0.001, 3))
    usage.track(LLMUsage("m", 20, 7, 0.002, 4))

    totals = usage.totals()
    assert totals.tokens_in == 30
    assert totals.tokens_out == 12
    assert totals.total_tokens == 42
    assert totals.call_count == 2
    assert totals.cost_usd == pytest.approx(0.003)

    usage.reset()
    assert usage.totals().call_count == 0


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcde") == 2
