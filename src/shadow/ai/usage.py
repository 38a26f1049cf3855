"""
Usage tracking for Shadow model calls.

One UsageRecord is appended per model call that reached a terminal
state (success or final failure). Aggregates are not maintained on
insert; summary() projects totals and per-agent / per-model breakdowns
from the record list, so they always equal the sum over the records.

Usage:
    tracker = UsageTracker()
    tracker.record(UsageRecord(model=..., agent="Quick Scanner", ...))
    summary = tracker.summary()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from shadow.models.agent import ModelTier

logger = structlog.get_logger(__name__)

# Pricing per 1M tokens (input, output) in USD
MODEL_PRICING: dict[str, tuple[float, float]] = {
    ModelTier.OPUS.value: (15.0, 75.0),
    ModelTier.SONNET.value: (3.0, 15.0),
    ModelTier.HAIKU.value: (0.80, 4.00),
    "claude-opus-4.6": (15.0, 75.0),
    "claude-sonnet-4.5": (3.0, 15.0),
    "claude-haiku-4.5": (0.80, 4.00),
}

_SHORT_NAMES: dict[str, str] = {
    ModelTier.OPUS.value: "Opus 4.5",
    ModelTier.SONNET.value: "Sonnet 4.5",
    ModelTier.HAIKU.value: "Haiku 4.5",
    "claude-opus-4.6": "Opus 4.6",
    "claude-sonnet-4.5": "Sonnet 4.5",
    "claude-haiku-4.5": "Haiku 4.5",
}


def calculate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """
    Calculate cost in USD for token usage.

    Args:
        input_tokens: Number of input tokens.
        output_tokens: Number of output tokens.
        model: Model identifier for pricing lookup.

    Returns:
        Cost in USD; 0.0 for models missing from the price table.
    """
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        return 0.0

    input_price, output_price = pricing
    return (input_tokens / 1_000_000) * input_price + (output_tokens / 1_000_000) * output_price


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token."""
    return len(text or "") // 4


def format_tokens(tokens: int) -> str:
    """Compact token count: 950, 1.2K, 3.4M."""
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}K"
    return str(tokens)


def model_short_name(model: str) -> str:
    """Display name for a model identifier; unknown models are shown as-is."""
    return _SHORT_NAMES.get(model, model)


@dataclass(frozen=True)
class UsageRecord:
    """One terminal model call."""

    model: str
    agent: str
    input_tokens: int
    output_tokens: int
    duration: float
    success: bool
    error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def cost(self) -> float:
        return calculate_cost(self.input_tokens, self.output_tokens, self.model)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "agent": self.agent,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "duration": round(self.duration, 3),
            "success": self.success,
            "error": self.error,
            "cost_usd": round(self.cost, 6),
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
        }


@dataclass
class UsageBucket:
    """Aggregated metrics for one agent or model."""

    name: str
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    duration: float = 0.0
    operations: int = 0
    successful: int = 0

    def add(self, record: UsageRecord) -> None:
        self.input_tokens += record.input_tokens
        self.output_tokens += record.output_tokens
        self.cost += record.cost
        self.duration += record.duration
        self.operations += 1
        if record.success:
            self.successful += 1

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "model": self.model,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost_usd": round(self.cost, 6),
            "duration": round(self.duration, 3),
            "operations": self.operations,
            "successful": self.successful,
        }


@dataclass
class UsageSummary:
    """Read-only projection over all records seen so far."""

    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost: float = 0.0
    total_duration: float = 0.0
    total_operations: int = 0
    successful_operations: int = 0
    by_agent: dict[str, UsageBucket] = field(default_factory=dict)
    by_model: dict[str, UsageBucket] = field(default_factory=dict)

    @property
    def failed_operations(self) -> int:
        return self.total_operations - self.successful_operations

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "total_duration": round(self.total_duration, 3),
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "by_agent": {k: v.to_dict() for k, v in self.by_agent.items()},
            "by_model": {k: v.to_dict() for k, v in self.by_model.items()},
        }


class UsageTracker:
    """
    Thread-safe, append-only store of usage records.

    Shared by every analysis client of a run. Inserts and snapshots
    both take the same lock; the aggregation itself runs on the
    snapshot outside the lock.
    """

    def __init__(self) -> None:
        self._records: list[UsageRecord] = []
        self._lock = threading.Lock()

    def record(self, usage: UsageRecord) -> None:
        """Append a record."""
        with self._lock:
            self._records.append(usage)

        logger.debug(
            "usage_recorded",
            agent=usage.agent,
            model=usage.model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            success=usage.success,
            cost_usd=round(usage.cost, 6),
        )

    @property
    def records(self) -> list[UsageRecord]:
        """Copy of the records in insertion order."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def reset(self) -> None:
        """Drop all records."""
        with self._lock:
            self._records.clear()

    def summary(self) -> UsageSummary:
        """Compute totals and per-agent / per-model breakdowns."""
        summary = UsageSummary()

        for usage in self.records:
            cost = usage.cost
            summary.total_input_tokens += usage.input_tokens
            summary.total_output_tokens += usage.output_tokens
            summary.total_cost += cost
            summary.total_duration += usage.duration
            summary.total_operations += 1
            if usage.success:
                summary.successful_operations += 1

            agent_bucket = summary.by_agent.get(usage.agent)
            if agent_bucket is None:
                agent_bucket = summary.by_agent[usage.agent] = UsageBucket(
                    name=usage.agent, model=usage.model
                )
            agent_bucket.add(usage)

            model_bucket = summary.by_model.get(usage.model)
            if model_bucket is None:
                model_bucket = summary.by_model[usage.model] = UsageBucket(
                    name=model_short_name(usage.model), model=usage.model
                )
            model_bucket.add(usage)

        return summary
