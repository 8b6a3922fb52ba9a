from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ..constants import DEFAULT_MAX_BATCH_SIZE, DEFAULT_TIME_WINDOW_HOURS, MAX_TIME_WINDOW_HOURS, Category
from ..errors import BatchClosedError, ConfigError
from ..models import Batch, Commit
from .categorizer import categorize


class BatchBuilder:
    """Open batch that accumulates newest-first commits until closed."""

    def __init__(self) -> None:
        self._commits: List[Commit] = []
        self._files: Dict[str, None] = {}
        self.start_date: Optional[datetime] = None
        self.end_date: Optional[datetime] = None
        self.category: Optional[str] = None
        self.closed = False

    def __len__(self) -> int:
        return len(self._commits)

    def append(self, commit: Commit) -> None:
        if self.closed:
            raise BatchClosedError("Cannot append to a closed batch")
        category = categorize(commit.first_line)
        if not self._commits:
            self.start_date = commit.date
            self.category = category
        elif self.category == Category.OTHER.value and category != Category.OTHER.value:
            # Only upgrade from "other"; a specific label is never replaced.
            self.category = category
        self._commits.append(commit)
        self.end_date = commit.date
        for change in commit.files:
            self._files.setdefault(change.filename, None)

    def close(self) -> Batch:
        if self.closed:
            raise BatchClosedError("Batch already closed")
        if not self._commits:
            raise ValueError("Cannot close an empty batch")
        self.closed = True
        return Batch(
            commits=tuple(self._commits),
            start_date=self.start_date,
            end_date=self.end_date,
            category=self.category or Category.OTHER.value,
            files=tuple(self._files),
        )


def validate_batch_options(time_window_hours: float, max_batch_size: int) -> None:
    if isinstance(max_batch_size, bool) or not isinstance(max_batch_size, int) or max_batch_size < 1:
        raise ConfigError(f"max_batch_size must be a positive integer, got {max_batch_size!r}")
    if isinstance(time_window_hours, bool) or not isinstance(time_window_hours, (int, float)):
        raise ConfigError(f"time_window_hours must be a number, got {time_window_hours!r}")
    if not 0 < time_window_hours <= MAX_TIME_WINDOW_HOURS:
        raise ConfigError(
            f"time_window_hours must be in (0, {MAX_TIME_WINDOW_HOURS}], got {time_window_hours!r}"
        )


def batch_commits(
    commits: Iterable[Commit],
    *,
    time_window_hours: float = DEFAULT_TIME_WINDOW_HOURS,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
) -> List[Batch]:
    """
    Group commits into time and size bounded batches.

    Commits are ordered newest first (stable, so equal timestamps keep input
    order). A commit joins the open batch unless the batch is full or the
    commit is more than `time_window_hours` older than the batch's newest
    commit.
    """
    validate_batch_options(time_window_hours, max_batch_size)

    ordered = sorted(commits, key=lambda c: c.date, reverse=True)
    if not ordered:
        return []

    window = timedelta(hours=time_window_hours)
    batches: List[Batch] = []
    current = BatchBuilder()

    for commit in ordered:
        start_new = (
            len(current) == 0
            or len(current) >= max_batch_size
            or (current.start_date - commit.date) > window
        )
        if start_new and len(current) > 0:
            batches.append(current.close())
            current = BatchBuilder()
        current.append(commit)

    if len(current) > 0:
        batches.append(current.close())

    return batches
