from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    """Work categories, in heuristic priority order."""

    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    DOCS = "docs"
    TEST = "test"
    CHORE = "chore"
    STYLE = "style"
    PERFORMANCE = "performance"
    OTHER = "other"


CATEGORIES = tuple(c.value for c in Category)

# Batches at or above this Pass-1 importance get a detailed Pass-2 analysis.
IMPORTANCE_THRESHOLD = 3

# Importance assigned when Pass-1 classification fails.
FALLBACK_IMPORTANCE = 2

DEFAULT_TIME_WINDOW_HOURS = 4
DEFAULT_MAX_BATCH_SIZE = 10

# Upper bound on the batching window (100 years).
MAX_TIME_WINDOW_HOURS = 24 * 365 * 100


class ExitCode(int, Enum):
    """Process exit codes."""

    SUCCESS = 0
    ERROR = 2
    CANCELLED = 130


class Limits:
    """Shared hard limits on prompt size."""

    MAX_FILES_LISTED = 10
    MAX_PATCH_FILES = 5
    MAX_PATCH_CHARS_PER_FILE = 500
    MAX_PATCH_CHARS = 3_000
    MAX_ITEMS_PER_CATEGORY = 5
    GITHUB_PAGE_SIZE = 100
