from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..constants import CATEGORIES, IMPORTANCE_THRESHOLD, Category
from ..errors import SynthesisError
from ..logging import AuditLogger
from ..models import AggregateStats, Analysis, RepoMeta, Summary, empty_category_counts
from .llm import ANALYSIS_TIERS, LLMClient, UsageTracker
from .prompts import portfolio_summary_prompt


def _bucket(category: Optional[str]) -> str:
    return category if category in CATEGORIES else Category.OTHER.value


def categorize_work(analyses: Sequence[Analysis]) -> Dict[str, List[Analysis]]:
    """Group analyses by category label; every category key is present."""
    grouped: Dict[str, List[Analysis]] = {category: [] for category in CATEGORIES}
    for analysis in analyses:
        grouped[_bucket(analysis.category)].append(analysis)
    return grouped


def get_stats(analyses: Sequence[Analysis]) -> AggregateStats:
    by_category = empty_category_counts()
    for analysis in analyses:
        by_category[_bucket(analysis.category)] += 1
    return AggregateStats(
        total_batches=len(analyses),
        total_commits=sum(a.batch.commit_count for a in analyses),
        by_category=by_category,
        important_count=sum(1 for a in analyses if a.importance >= IMPORTANCE_THRESHOLD),
        detailed_count=sum(1 for a in analyses if a.detailed_analysis),
    )


async def summarize(
    analyses: Sequence[Analysis],
    repo_meta: RepoMeta,
    *,
    client: LLMClient,
    usage: Optional[UsageTracker] = None,
    logger: Optional[AuditLogger] = None,
) -> Summary:
    """
    Portfolio narrative over all analyses.

    This is the one step without a local fallback: a failed completion
    raises SynthesisError. The returned Summary carries this call's usage and
    the cumulative totals of `usage`, which should be the tracker the passes
    recorded into.
    """
    usage = usage if usage is not None else UsageTracker()
    prompt = portfolio_summary_prompt(categorize_work(analyses), repo_meta)
    response = await client.complete(
        prompt,
        ANALYSIS_TIERS["summary"],
        usage=usage,
        operation="summarize",
    )
    if not response.success or not response.content.strip():
        if logger is not None:
            logger.error("synthesis_failed", repo=repo_meta.name, error=response.error)
        raise SynthesisError(response.error or "Summary generation returned no text")

    return Summary(
        text=response.content.strip(),
        usage=response.usage,
        total_usage=usage.totals(),
    )
