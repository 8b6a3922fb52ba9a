from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..analyze.categorizer import categorize
from ..models import Commit, empty_category_counts

BOT_PATTERNS = ("[bot]", "dependabot", "renovate", "github-actions")

# Matched against the whole lowercased message.
TRIVIAL_PATTERNS = (
    re.compile(r"^merge branch"),
    re.compile(r"^merge pull request"),
    re.compile(r"^bump version"),
    re.compile(r"^v?\d+\.\d+\.\d+$"),
    re.compile(r"^wip$"),
    re.compile(r"^initial commit$"),
)


def is_bot_commit(commit: Commit) -> bool:
    login = (commit.author_login or "").lower()
    return any(pattern in login for pattern in BOT_PATTERNS)


def is_trivial_commit(commit: Commit) -> bool:
    message = commit.message.strip().lower()
    return any(pattern.search(message) for pattern in TRIVIAL_PATTERNS)


def filter_commits(
    commits: Iterable[Commit],
    *,
    include_merge_commits: bool = False,
    include_bot_commits: bool = False,
) -> List[Commit]:
    """Drop merge commits, bot-authored commits and trivial housekeeping commits."""
    kept: List[Commit] = []
    for commit in commits:
        if not include_merge_commits and commit.is_merge:
            continue
        if not include_bot_commits and is_bot_commit(commit):
            continue
        if is_trivial_commit(commit):
            continue
        kept.append(commit)
    return kept


@dataclass(frozen=True)
class CommitStats:
    total_commits: int
    total_additions: int
    total_deletions: int
    files_changed: int
    by_month: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def commit_stats(commits: Sequence[Commit]) -> CommitStats:
    additions = 0
    deletions = 0
    files: set[str] = set()
    by_month: Dict[str, int] = {}
    by_category = empty_category_counts()

    for commit in commits:
        if commit.stats is not None:
            additions += commit.stats.additions
            deletions += commit.stats.deletions
        files.update(f.filename for f in commit.files)
        by_category[categorize(commit.first_line)] += 1
        month = commit.date.strftime("%Y-%m")
        by_month[month] = by_month.get(month, 0) + 1

    return CommitStats(
        total_commits=len(commits),
        total_additions=additions,
        total_deletions=deletions,
        files_changed=len(files),
        by_month=dict(sorted(by_month.items())),
        by_category=by_category,
    )
