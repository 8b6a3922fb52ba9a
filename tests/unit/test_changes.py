from __future__ import annotations

import io
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from gitaudit.analyze.changes import extract_changes
from gitaudit.errors import ComparisonUnavailable, GitHubError
from gitaudit.logging import AuditLogger
from gitaudit.models import Batch, ChangeStats, Commit, CommitDetail, Comparison, FileChange, RepoRef

REPO = RepoRef("octo", "widgets")
BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _batch(*shas: str) -> Batch:
    commits = tuple(
        Commit(sha=sha, message=f"change {sha}\n\nbody", date=BASE - timedelta(hours=i))
        for i, sha in enumerate(shas)
    )
    return Batch(
        commits=commits,
        start_date=commits[0].date if commits else BASE,
        end_date=commits[-1].date if commits else BASE,
        category="other",
    )


def _provider(**kwargs) -> SimpleNamespace:
    return SimpleNamespace(
        get_commit_detail=kwargs.get("get_commit_detail", AsyncMock()),
        compare_commits=kwargs.get("compare_commits", AsyncMock()),
    )


@pytest.mark.anyio
async def test_empty_batch_returns_none() -> None:
    provider = _provider()
    assert await extract_changes(_batch(), provider, REPO) is None
    provider.get_commit_detail.assert_not_awaited()
    provider.compare_commits.assert_not_awaited()


@pytest.mark.anyio
async def test_single_commit_uses_commit_detail() -> None:
    files = (FileChange("app.py", additions=3, deletions=1),)
    detail = CommitDetail(sha="aaa", message="m", date=BASE, files=files, stats=ChangeStats(3, 1, 4))
    provider = _provider(get_commit_detail=AsyncMock(return_value=detail))

    changes = await extract_changes(_batch("aaa"), provider, REPO)

    provider.get_commit_detail.assert_awaited_once_with(REPO, "aaa")
    assert changes.kind == "single"
    assert changes.files == files
    assert changes.stats.total == 4
    assert changes.commit is detail


@pytest.mark.anyio
async def test_single_commit_failure_propagates() -> None:
    provider = _provider(get_commit_detail=AsyncMock(side_effect=GitHubError("boom")))
    with pytest.raises(GitHubError):
        await extract_changes(_batch("aaa"), provider, REPO)


@pytest.mark.anyio
async def test_multiple_commits_compare_oldest_to_newest() -> None:
    files = (FileChange("a.py", additions=2), FileChange("b.py", deletions=5))
    comparison = Comparison(
        ahead_by=3,
        behind_by=0,
        total_commits=3,
        files=files,
        stats=ChangeStats.from_files(files),
    )
    provider = _provider(compare_commits=AsyncMock(return_value=comparison))

    changes = await extract_changes(_batch("new", "mid", "old"), provider, REPO)

    provider.compare_commits.assert_awaited_once_with(REPO, "old", "new")
    assert changes.kind == "range"
    assert changes.start_sha == "old"
    assert changes.end_sha == "new"
    assert changes.commit_count == 3
    assert changes.stats.additions == 2
    assert changes.stats.deletions == 5


@pytest.mark.anyio
@pytest.mark.parametrize(
    "exc",
    [
        ComparisonUnavailable("diverged"),
        httpx.ConnectError("offline"),
        RuntimeError("unexpected"),
    ],
)
async def test_comparison_failure_degrades_to_messages(exc: Exception) -> None:
    provider = _provider(compare_commits=AsyncMock(side_effect=exc))
    batch = _batch("new", "old")

    changes = await extract_changes(batch, provider, REPO)

    assert changes.kind == "messages_only"
    assert changes.files == ()
    assert changes.commit_count == 2
    assert [(m.sha, m.message, m.date) for m in changes.messages] == [
        (c.sha, c.message, c.date) for c in batch.commits
    ]


@pytest.mark.anyio
async def test_comparison_failure_is_logged() -> None:
    stream = io.StringIO()
    logger = AuditLogger("run-x", stream=stream)
    provider = _provider(compare_commits=AsyncMock(side_effect=ComparisonUnavailable("diverged")))

    await extract_changes(_batch("new", "old"), provider, REPO, logger)

    payload = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert payload["level"] == "warning"
    assert payload["message"] == "comparison_unavailable"
    assert payload["repo"] == "octo/widgets"
