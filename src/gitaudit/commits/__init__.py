"""Commit listing helpers."""

from .filters import CommitStats, commit_stats, filter_commits, is_bot_commit, is_trivial_commit

__all__ = [
    "CommitStats",
    "commit_stats",
    "filter_commits",
    "is_bot_commit",
    "is_trivial_commit",
]
