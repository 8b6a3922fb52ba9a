from __future__ import annotations

from typing import Tuple

from ..constants import Category

# (category, prefixes, substrings), checked in order; first match wins.
_RULES: Tuple[Tuple[Category, Tuple[str, ...], Tuple[str, ...]], ...] = (
    (Category.FEATURE, ("feat",), ("add ", "implement", "new ")),
    (Category.BUGFIX, ("fix",), ("bug", "patch", "hotfix")),
    (Category.REFACTOR, ("refactor",), ("refactor", "restructure")),
    (Category.DOCS, ("doc",), ("readme", "comment")),
    (Category.TEST, ("test",), ("test", "spec")),
    (Category.CHORE, ("chore", "build"), ("deps", "ci")),
    (Category.STYLE, ("style",), ("format", "lint")),
    (Category.PERFORMANCE, ("perf",), ("optim", "performance")),
)


def categorize(message: str) -> str:
    """
    Heuristic category for a commit message line.

    Substrings match anywhere in the line, so "ci" also matches "decision".
    The result only seeds a batch label; Pass 1 may override it.
    """
    lower = (message or "").lower()
    for category, prefixes, substrings in _RULES:
        if lower.startswith(prefixes) or any(s in lower for s in substrings):
            return category.value
    return Category.OTHER.value
