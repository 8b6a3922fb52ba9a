from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from ..constants import FALLBACK_IMPORTANCE, IMPORTANCE_THRESHOLD
from ..logging import AuditLogger
from ..models import Analysis, Batch, RepoRef
from .changes import ChangeProvider, extract_changes
from .llm import ANALYSIS_TIERS, LLMClient, ResponseParser, UsageTracker
from .prompts import batch_categorization_prompt, detailed_analysis_prompt

T = TypeVar("T")
R = TypeVar("R")

CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation flag, checked between batches."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class AnalysisRun:
    analyses: List[Analysis]
    detailed_count: int
    usage: UsageTracker
    cancelled: bool = False

    @property
    def important(self) -> List[Analysis]:
        return [a for a in self.analyses if a.importance >= IMPORTANCE_THRESHOLD]


def local_description(batch: Batch) -> str:
    """Description built from commit messages when the model is unavailable."""
    if not batch.commits:
        return ""
    first = batch.commits[0].first_line
    if batch.commit_count == 1:
        return first
    return f"{first} (and {batch.commit_count - 1} more commits)"


def fallback_analysis(batch: Batch, error: str) -> Analysis:
    return Analysis(
        batch=batch,
        category=batch.category,
        description=local_description(batch),
        importance=FALLBACK_IMPORTANCE,
        error=error,
    )


class TwoPassAnalyzer:
    """
    Tiered analysis over a batch sequence.

    Pass 1 classifies every batch with the cheap tier. Batches whose
    importance reaches IMPORTANCE_THRESHOLD then get a detailed Pass-2
    analysis with their diff. Remote failures in either pass are recorded on
    the Analysis and never abort the run.
    """

    def __init__(
        self,
        client: LLMClient,
        provider: ChangeProvider,
        *,
        logger: Optional[AuditLogger] = None,
        detailed: bool = True,
        max_concurrency: int = 1,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.client = client
        self.provider = provider
        self.logger = logger or AuditLogger("gitaudit")
        self.detailed = detailed
        self.max_concurrency = max_concurrency
        self.parser = ResponseParser()

    async def run(
        self,
        batches: Sequence[Batch],
        repo: RepoRef,
        *,
        usage: Optional[UsageTracker] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> AnalysisRun:
        usage = usage if usage is not None else UsageTracker()
        total = len(batches)

        with self.logger.stage("pass1_categorization"):
            analyses = await self._map(
                list(batches),
                lambda index, batch: self._categorize(index, total, batch, usage, cancel),
            )

        important = [a for a in analyses if a.importance >= IMPORTANCE_THRESHOLD]
        self.logger.info(
            "escalation",
            repo=repo.full_name,
            batches=total,
            important=len(important),
            detailed=self.detailed,
        )

        if important and self.detailed:
            with self.logger.stage("pass2_detailed"):
                await self._map(
                    important,
                    lambda index, analysis: self._detail(
                        index, len(important), analysis, repo, usage, cancel
                    ),
                )

        detailed_count = sum(1 for a in analyses if a.detailed_analysis)
        cancelled = bool(cancel and cancel.cancelled)
        self.logger.info(
            "analysis_complete",
            repo=repo.full_name,
            batches=total,
            detailed_count=detailed_count,
            cancelled=cancelled,
        )
        return AnalysisRun(
            analyses=analyses,
            detailed_count=detailed_count,
            usage=usage,
            cancelled=cancelled,
        )

    async def _map(
        self,
        items: List[T],
        fn: Callable[[int, T], Awaitable[R]],
    ) -> List[R]:
        """Apply fn to every item, preserving order, at most max_concurrency at a time."""
        if self.max_concurrency == 1:
            return [await fn(index, item) for index, item in enumerate(items)]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(index: int, item: T) -> R:
            async with semaphore:
                return await fn(index, item)

        return list(await asyncio.gather(*(_bounded(i, item) for i, item in enumerate(items))))

    async def _categorize(
        self,
        index: int,
        total: int,
        batch: Batch,
        usage: UsageTracker,
        cancel: Optional[CancellationToken],
    ) -> Analysis:
        if cancel is not None and cancel.cancelled:
            return fallback_analysis(batch, CANCELLED)

        self.logger.debug("pass1_batch", batch=index + 1, total=total, commits=batch.commit_count)
        response = await self.client.complete_structured(
            batch_categorization_prompt(batch),
            ANALYSIS_TIERS["categorization"],
            usage=usage,
            operation="categorize",
        )
        if not response.success:
            self.logger.warning(
                "pass1_fallback",
                batch=index + 1,
                error=response.error,
            )
            return fallback_analysis(batch, response.error or "classification failed")

        parsed = self.parser.parse_classification(response.data)
        return Analysis(
            batch=batch,
            category=parsed.category or batch.category,
            description=parsed.description or local_description(batch),
            importance=parsed.importance or 1,
            usage=[response.usage],
        )

    async def _detail(
        self,
        index: int,
        total: int,
        analysis: Analysis,
        repo: RepoRef,
        usage: UsageTracker,
        cancel: Optional[CancellationToken],
    ) -> None:
        if cancel is not None and cancel.cancelled:
            analysis.detailed_error = CANCELLED
            return

        self.logger.debug("pass2_batch", batch=index + 1, total=total)
        try:
            changes = await extract_changes(analysis.batch, self.provider, repo, self.logger)
        except Exception as exc:
            analysis.detailed_error = str(exc) or type(exc).__name__
            self.logger.warning("pass2_changes_failed", batch=index + 1, error=analysis.detailed_error)
            return

        response = await self.client.complete(
            detailed_analysis_prompt(analysis.batch, changes),
            ANALYSIS_TIERS["detailed"],
            usage=usage,
            operation="detailed",
        )
        if not response.success or not response.content.strip():
            analysis.detailed_error = response.error or "Empty detailed analysis"
            self.logger.warning("pass2_failed", batch=index + 1, error=analysis.detailed_error)
            return

        analysis.detailed_analysis = response.content.strip()
        analysis.changes = changes
        analysis.usage.append(response.usage)


async def analyze_batches(
    batches: Sequence[Batch],
    repo: RepoRef,
    *,
    client: LLMClient,
    provider: ChangeProvider,
    detailed: bool = True,
    max_concurrency: int = 1,
    usage: Optional[UsageTracker] = None,
    cancel: Optional[CancellationToken] = None,
    logger: Optional[AuditLogger] = None,
) -> List[Analysis]:
    """Run both passes and return one Analysis per batch, in batch order."""
    analyzer = TwoPassAnalyzer(
        client,
        provider,
        logger=logger,
        detailed=detailed,
        max_concurrency=max_concurrency,
    )
    result = await analyzer.run(batches, repo, usage=usage, cancel=cancel)
    return result.analyses
