from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Tuple

from .constants import CATEGORIES, IMPORTANCE_THRESHOLD
from .utils import first_line, parse_iso8601

if TYPE_CHECKING:
    from .analyze.llm.usage import LLMUsage, UsageTotals

ChangeSetKind = Literal["single", "range", "messages_only"]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class ChangeStats:
    additions: int = 0
    deletions: int = 0
    total: int = 0

    @classmethod
    def from_api(cls, payload: Optional[Dict[str, Any]]) -> "ChangeStats":
        payload = payload or {}
        additions = int(payload.get("additions") or 0)
        deletions = int(payload.get("deletions") or 0)
        total = int(payload.get("total") or additions + deletions)
        return cls(additions=additions, deletions=deletions, total=total)

    @classmethod
    def from_files(cls, files: "Tuple[FileChange, ...]") -> "ChangeStats":
        additions = sum(f.additions for f in files)
        deletions = sum(f.deletions for f in files)
        return cls(additions=additions, deletions=deletions, total=additions + deletions)


@dataclass(frozen=True)
class FileChange:
    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "FileChange":
        return cls(
            filename=str(payload.get("filename") or ""),
            status=str(payload.get("status") or "modified"),
            additions=int(payload.get("additions") or 0),
            deletions=int(payload.get("deletions") or 0),
            changes=int(payload.get("changes") or 0),
            patch=payload.get("patch"),
        )


@dataclass(frozen=True)
class Commit:
    """A commit as listed by the provider. Never mutated locally."""

    sha: str
    message: str
    date: datetime
    author_name: str = ""
    author_email: str = ""
    author_login: Optional[str] = None
    parents: Tuple[str, ...] = ()
    stats: Optional[ChangeStats] = None
    files: Tuple[FileChange, ...] = ()

    @property
    def first_line(self) -> str:
        return first_line(self.message)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Commit":
        """Build from a GitHub `GET /repos/{owner}/{repo}/commits` item."""
        commit = payload.get("commit") or {}
        author = commit.get("author") or {}
        account = payload.get("author") or {}
        stats = payload.get("stats")
        return cls(
            sha=str(payload.get("sha") or ""),
            message=str(commit.get("message") or ""),
            date=parse_iso8601(author.get("date")) or EPOCH,
            author_name=str(author.get("name") or ""),
            author_email=str(author.get("email") or ""),
            author_login=account.get("login"),
            parents=tuple(str(p.get("sha") or "") for p in payload.get("parents") or []),
            stats=ChangeStats.from_api(stats) if stats else None,
            files=tuple(FileChange.from_api(f) for f in payload.get("files") or []),
        )


@dataclass(frozen=True)
class Batch:
    """Closed group of temporally close commits, newest first."""

    commits: Tuple[Commit, ...]
    start_date: datetime
    end_date: datetime
    category: str
    files: Tuple[str, ...] = ()

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def newest(self) -> Commit:
        return self.commits[0]

    @property
    def oldest(self) -> Commit:
        return self.commits[-1]


@dataclass(frozen=True)
class CommitMessage:
    sha: str
    message: str
    date: datetime


@dataclass(frozen=True)
class CommitDetail:
    sha: str
    message: str
    date: Optional[datetime]
    files: Tuple[FileChange, ...]
    stats: ChangeStats


@dataclass(frozen=True)
class Comparison:
    ahead_by: int
    behind_by: int
    total_commits: int
    files: Tuple[FileChange, ...]
    stats: ChangeStats


@dataclass(frozen=True)
class ChangeSet:
    """Normalized file-level changes for a batch, at one of three fidelity levels."""

    kind: ChangeSetKind
    files: Tuple[FileChange, ...] = ()
    stats: Optional[ChangeStats] = None
    commit: Optional[CommitDetail] = None
    start_sha: Optional[str] = None
    end_sha: Optional[str] = None
    commit_count: int = 0
    messages: Tuple[CommitMessage, ...] = ()

    @classmethod
    def single(cls, detail: CommitDetail) -> "ChangeSet":
        return cls(
            kind="single",
            files=detail.files,
            stats=detail.stats,
            commit=detail,
            commit_count=1,
        )

    @classmethod
    def range(
        cls,
        *,
        start_sha: str,
        end_sha: str,
        commit_count: int,
        comparison: Comparison,
    ) -> "ChangeSet":
        return cls(
            kind="range",
            files=comparison.files,
            stats=comparison.stats,
            start_sha=start_sha,
            end_sha=end_sha,
            commit_count=commit_count,
        )

    @classmethod
    def messages_only(cls, commits: Tuple[Commit, ...]) -> "ChangeSet":
        return cls(
            kind="messages_only",
            commit_count=len(commits),
            messages=tuple(CommitMessage(sha=c.sha, message=c.message, date=c.date) for c in commits),
        )


@dataclass
class Analysis:
    """Per-batch result: created in Pass 1, enriched in place by Pass 2."""

    batch: Batch
    category: str
    description: str
    importance: int
    detailed_analysis: Optional[str] = None
    changes: Optional[ChangeSet] = None
    error: Optional[str] = None
    detailed_error: Optional[str] = None
    usage: List["LLMUsage"] = field(default_factory=list)

    @property
    def is_important(self) -> bool:
        return self.importance >= IMPORTANCE_THRESHOLD

    @property
    def has_detail(self) -> bool:
        return bool(self.detailed_analysis)

    @property
    def degraded(self) -> bool:
        return self.error is not None or self.detailed_error is not None


@dataclass(frozen=True)
class AggregateStats:
    total_batches: int
    total_commits: int
    by_category: Dict[str, int]
    important_count: int
    detailed_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RepoRef:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "RepoRef":
        owner, sep, name = (value or "").strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Expected OWNER/REPO, got: {value!r}")
        return cls(owner=owner, name=name)


@dataclass(frozen=True)
class RepoMeta:
    name: str
    description: Optional[str] = None
    languages: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Summary:
    text: str
    usage: "LLMUsage"
    total_usage: "UsageTotals"


def empty_category_counts() -> Dict[str, int]:
    return {category: 0 for category in CATEGORIES}
