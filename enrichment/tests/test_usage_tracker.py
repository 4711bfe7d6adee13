"""Tests for UsageTracker cost accounting."""

import pytest

from enrichment.common.schemas.records import TokenUsage
from enrichment.common.usage_tracker import DEFAULT_RATE, MODEL_RATES, UsageTracker, estimate_usage_cost


class TestUsageTracker:
    def test_accumulates_across_calls(self):
        tracker = UsageTracker()
        tracker.accumulate(TokenUsage(prompt=1000, completion=200, total=1200))
        tracker.accumulate(TokenUsage(prompt=3000, completion=800, total=3800))

        total = tracker.total()
        assert (total.prompt, total.completion, total.total) == (4000, 1000, 5000)
        assert tracker.call_count == 2

    def test_cost_matches_published_rates(self):
        tracker = UsageTracker()
        usages = [
            TokenUsage(prompt=1_000_000, completion=0, total=1_000_000),
            TokenUsage(prompt=500_000, completion=250_000, total=750_000),
            TokenUsage(prompt=0, completion=750_000, total=750_000),
        ]
        for usage in usages:
            tracker.accumulate(usage)

        rate = MODEL_RATES["gpt-4o"]
        expected = 1.5 * rate.input + 1.0 * rate.output
        assert tracker.estimate_cost("gpt-4o") == pytest.approx(expected)
        assert tracker.estimate_cost("gpt-4o") == pytest.approx(13.75)

    def test_unknown_model_uses_default_rate(self):
        usage = TokenUsage(prompt=2_000_000, completion=1_000_000, total=3_000_000)
        expected = 2 * DEFAULT_RATE.input + DEFAULT_RATE.output
        assert estimate_usage_cost(usage, "some-new-model") == pytest.approx(expected)

    def test_trackers_are_isolated(self):
        a = UsageTracker()
        b = UsageTracker()
        a.accumulate(TokenUsage(prompt=10, completion=5, total=15))
        assert b.total().total == 0

    def test_total_returns_copy(self):
        tracker = UsageTracker()
        tracker.accumulate(TokenUsage(prompt=10, completion=5, total=15))
        snapshot = tracker.total()
        snapshot.prompt = 999
        assert tracker.total().prompt == 10

    def test_reset(self):
        tracker = UsageTracker()
        tracker.accumulate(TokenUsage(prompt=10, completion=5, total=15))
        tracker.reset()
        assert tracker.total().total == 0
        assert tracker.call_count == 0
        assert tracker.estimate_cost("gpt-4o-mini") == 0
