from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import List, Optional


@dataclass(frozen=True)
class LLMUsage:
    model: str
    tokens_in: int
    tokens_out: int
    cost_usd: float
    latency_ms: int
    provider: str = "openrouter"
    operation: str = ""

    @property
    def total_tokens(self) -> int:
        return self.tokens_in + self.tokens_out


@dataclass(frozen=True)
class UsageTotals:
    tokens_in: int = 0
    tokens_out: int = 0
    total_tokens: int = 0
    call_count: int = 0
    cost_usd: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class UsageTracker:
    """Append-only token accounting for one top-level analysis run."""

    def __init__(self) -> None:
        self._calls: List[LLMUsage] = []

    @property
    def calls(self) -> List[LLMUsage]:
        return list(self._calls)

    def track(self, usage: LLMUsage) -> LLMUsage:
        self._calls.append(usage)
        return usage

    def totals(self) -> UsageTotals:
        tokens_in = sum(c.tokens_in for c in self._calls)
        tokens_out = sum(c.tokens_out for c in self._calls)
        return UsageTotals(
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            total_tokens=tokens_in + tokens_out,
            call_count=len(self._calls),
            cost_usd=round(sum(c.cost_usd for c in self._calls), 6),
        )

    def reset(self) -> None:
        self._calls = []


def estimate_tokens(text: Optional[str]) -> int:
    """Rough token estimate (~4 characters per token)."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)
