"""
Unit tests for usage tracking and cost accounting.
"""

import threading

import pytest

from shadow.ai.usage import (
    MODEL_PRICING,
    UsageRecord,
    UsageTracker,
    calculate_cost,
    estimate_tokens,
    format_tokens,
    model_short_name,
)
from shadow.models.agent import ModelTier


def _record(agent="Quick Scanner", model=ModelTier.HAIKU.value, tokens_in=1000, tokens_out=500, success=True, duration=1.5):
    return UsageRecord(
        model=model,
        agent=agent,
        input_tokens=tokens_in,
        output_tokens=tokens_out,
        duration=duration,
        success=success,
        error=None if success else "rate limit exceeded",
    )


class TestPricing:
    """Static price table."""

    def test_sonnet_cost(self):
        cost = calculate_cost(1_000_000, 1_000_000, ModelTier.SONNET.value)
        assert cost == pytest.approx(18.0)

    def test_opus_cost(self):
        cost = calculate_cost(2_000_000, 100_000, ModelTier.OPUS.value)
        assert cost == pytest.approx(30.0 + 7.5)

    def test_haiku_cost(self):
        cost = calculate_cost(1_000_000, 1_000_000, ModelTier.HAIKU.value)
        assert cost == pytest.approx(4.8)

    def test_unknown_model_costs_nothing(self):
        assert calculate_cost(10_000, 10_000, "some-other-model") == 0.0

    def test_every_catalogue_model_is_priced(self):
        for tier in ModelTier:
            assert tier.value in MODEL_PRICING


class TestHelpers:
    """Token estimation and formatting."""

    def test_estimate_tokens_is_quarter_length(self):
        assert estimate_tokens("a" * 401) == 100
        assert estimate_tokens("") == 0

    @pytest.mark.parametrize(
        "tokens,expected",
        [(950, "950"), (1200, "1.2K"), (3_400_000, "3.4M")],
    )
    def test_format_tokens(self, tokens, expected):
        assert format_tokens(tokens) == expected

    def test_model_short_name(self):
        assert model_short_name(ModelTier.SONNET.value) == "Sonnet 4.5"
        assert model_short_name("claude-opus-4.6") == "Opus 4.6"
        assert model_short_name("mystery") == "mystery"


class TestUsageTracker:
    """Summary invariants."""

    def test_empty_summary(self, tracker):
        summary = tracker.summary()

        assert summary.total_operations == 0
        assert summary.total_cost == 0.0
        assert summary.by_agent == {}

    def test_summary_matches_records(self, tracker):
        records = [
            _record(),
            _record(agent="Vulnerability Researcher", model=ModelTier.SONNET.value, tokens_in=4000, tokens_out=2000),
            _record(agent="Exploitation Specialist", model=ModelTier.OPUS.value, success=False, tokens_out=0),
            _record(agent="Vulnerability Researcher", model=ModelTier.SONNET.value, duration=2.0),
            _record(agent="Custom", model="unpriced-model"),
        ]
        for r in records:
            tracker.record(r)

        summary = tracker.summary()

        assert summary.total_operations == len(records)
        assert summary.successful_operations == sum(1 for r in records if r.success)
        assert summary.failed_operations == 1
        assert summary.total_cost == pytest.approx(sum(r.cost for r in records))
        assert summary.total_input_tokens == sum(r.input_tokens for r in records)
        assert summary.total_output_tokens == sum(r.output_tokens for r in records)
        assert summary.total_duration == pytest.approx(sum(r.duration for r in records))

    def test_breakdowns(self, tracker):
        tracker.record(_record(agent="Vulnerability Researcher", model=ModelTier.SONNET.value))
        tracker.record(_record(agent="Reconnaissance Analyst", model=ModelTier.SONNET.value, success=False))
        tracker.record(_record())

        summary = tracker.summary()

        assert set(summary.by_agent) == {"Vulnerability Researcher", "Reconnaissance Analyst", "Quick Scanner"}
        recon = summary.by_agent["Reconnaissance Analyst"]
        assert recon.operations == 1
        assert recon.successful == 0

        sonnet = summary.by_model[ModelTier.SONNET.value]
        assert sonnet.operations == 2
        assert sonnet.name == "Sonnet 4.5"
        assert sonnet.cost == pytest.approx(2 * calculate_cost(1000, 500, ModelTier.SONNET.value))

    def test_summary_reflects_later_records(self, tracker):
        tracker.record(_record())
        first = tracker.summary()
        tracker.record(_record())

        assert first.total_operations == 1
        assert tracker.summary().total_operations == 2

    def test_records_are_copies(self, tracker):
        tracker.record(_record())
        tracker.records.clear()

        assert len(tracker) == 1

    def test_reset(self, tracker):
        tracker.record(_record())
        tracker.reset()

        assert tracker.summary().total_operations == 0

    def test_concurrent_records(self, tracker):
        def worker():
            for _ in range(200):
                tracker.record(_record())
                tracker.summary()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        summary = tracker.summary()
        assert summary.total_operations == 1600
        assert summary.by_agent["Quick Scanner"].operations == 1600

    def test_to_dict(self, tracker):
        tracker.record(_record())
        data = tracker.summary().to_dict()

        assert data["total_operations"] == 1
        assert "Quick Scanner" in data["by_agent"]
