from __future__ import annotations

from typing import Optional, Protocol

from ..logging import AuditLogger
from ..models import Batch, ChangeSet, CommitDetail, Comparison, RepoRef


class ChangeProvider(Protocol):
    async def get_commit_detail(self, repo: RepoRef, sha: str) -> CommitDetail:
        ...

    async def compare_commits(self, repo: RepoRef, base: str, head: str) -> Comparison:
        ...


async def extract_changes(
    batch: Batch,
    provider: ChangeProvider,
    repo: RepoRef,
    logger: Optional[AuditLogger] = None,
) -> Optional[ChangeSet]:
    """
    Effective changes for a batch.

    One commit: its full detail. Several: the oldest...newest comparison,
    degrading to the batch's own messages when the comparison fails. Only a
    single-commit detail failure propagates.
    """
    commits = batch.commits
    if not commits:
        return None

    if len(commits) == 1:
        detail = await provider.get_commit_detail(repo, commits[0].sha)
        return ChangeSet.single(detail)

    oldest_sha = commits[-1].sha
    newest_sha = commits[0].sha
    try:
        comparison = await provider.compare_commits(repo, oldest_sha, newest_sha)
    except Exception as exc:
        if logger is not None:
            logger.warning(
                "comparison_unavailable",
                repo=repo.full_name,
                base=oldest_sha[:7],
                head=newest_sha[:7],
                error=str(exc) or type(exc).__name__,
            )
        return ChangeSet.messages_only(commits)

    return ChangeSet.range(
        start_sha=oldest_sha,
        end_sha=newest_sha,
        commit_count=len(commits),
        comparison=comparison,
    )
