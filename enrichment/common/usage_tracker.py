"""
Usage Tracker

Accumulates generation token usage for cost estimation. Construct one per
run and hand it to the components that spend tokens; nothing is global.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from .schemas.records import TokenUsage

logger = logging.getLogger("tank.common.usage_tracker")


@dataclass(frozen=True)
class ModelRate:
    """USD per million tokens"""
    input: float
    output: float


MODEL_RATES: Dict[str, ModelRate] = {
    "gpt-4o-mini": ModelRate(input=0.075, output=0.30),  # flex tier
    "gpt-4o": ModelRate(input=2.50, output=10.00),
    "claude-sonnet-4-20250514": ModelRate(input=3.00, output=15.00),
    "claude-haiku-4-5-20251001": ModelRate(input=1.00, output=5.00),
    "gemini-2.0-flash-exp": ModelRate(input=0.10, output=0.40),
}

DEFAULT_RATE = ModelRate(input=0.15, output=0.60)


def rate_for(model: str) -> ModelRate:
    return MODEL_RATES.get(model, DEFAULT_RATE)


def estimate_usage_cost(usage: TokenUsage, model: str) -> float:
    """Cost in USD of a single usage record"""
    rate = rate_for(model)
    return (usage.prompt / 1_000_000) * rate.input + (usage.completion / 1_000_000) * rate.output


class UsageTracker:
    """Running prompt/completion totals for one process invocation."""

    def __init__(self):
        self._usage = TokenUsage()
        self._calls = 0

    @property
    def call_count(self) -> int:
        """Number of usage records accumulated since the last reset"""
        return self._calls

    def accumulate(self, usage: TokenUsage) -> None:
        self._usage = self._usage + usage
        self._calls += 1

    def total(self) -> TokenUsage:
        """Copy of the running totals"""
        return TokenUsage(
            prompt=self._usage.prompt,
            completion=self._usage.completion,
            total=self._usage.total,
        )

    def estimate_cost(self, model: str) -> float:
        return estimate_usage_cost(self._usage, model)

    def reset(self) -> None:
        logger.debug("Resetting usage after %d calls", self._calls)
        self._usage = TokenUsage()
        self._calls = 0
