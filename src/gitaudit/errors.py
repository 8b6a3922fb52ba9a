from __future__ import annotations

from .constants import ExitCode


class GitAuditError(Exception):
    """Base exception for all gitaudit errors."""

    exit_code: ExitCode = ExitCode.ERROR


class ConfigError(GitAuditError):
    """Configuration or option validation failed."""


class BatchClosedError(GitAuditError):
    """A closed batch builder was modified."""


class GitHubError(GitAuditError):
    """GitHub API call failed."""


class RepositoryNotFound(GitHubError):
    """Repository does not exist or is not accessible."""


class RepositoryEmpty(GitHubError):
    """Repository has no commits."""


class ComparisonUnavailable(GitHubError):
    """Commit range comparison cannot be computed (e.g. divergent history)."""


class CompletionError(GitAuditError):
    """LLM completion failed."""


class MalformedResponse(CompletionError):
    """LLM response held no parseable JSON object."""


class SynthesisError(CompletionError):
    """Final narrative synthesis failed."""


class AnalysisCancelled(GitAuditError):
    """Run interrupted before it could complete."""

    exit_code = ExitCode.CANCELLED
