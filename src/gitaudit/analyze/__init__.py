"""Batching and two-pass analysis."""

from .aggregate import categorize_work, get_stats, summarize
from .analyzer import AnalysisRun, CancellationToken, TwoPassAnalyzer, analyze_batches
from .batcher import BatchBuilder, batch_commits
from .categorizer import categorize
from .changes import ChangeProvider, extract_changes

__all__ = [
    "AnalysisRun",
    "BatchBuilder",
    "CancellationToken",
    "ChangeProvider",
    "TwoPassAnalyzer",
    "analyze_batches",
    "batch_commits",
    "categorize",
    "categorize_work",
    "extract_changes",
    "get_stats",
    "summarize",
]
