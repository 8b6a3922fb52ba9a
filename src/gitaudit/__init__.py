"""Commit history batching and tiered LLM analysis."""

from .analyze import analyze_batches, batch_commits, get_stats, summarize

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "analyze_batches",
    "batch_commits",
    "get_stats",
    "summarize",
]
