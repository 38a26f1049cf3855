"""
Scan finding models for Shadow.

This module defines the immutable facts produced by scan modules and
the scan result container that carries them to the analysis layer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Severity levels for findings."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def color(self) -> str:
        """Get rich color for severity."""
        colors = {
            Severity.CRITICAL: "bold red",
            Severity.HIGH: "red",
            Severity.MEDIUM: "yellow",
            Severity.LOW: "green",
            Severity.INFO: "blue",
        }
        return colors.get(self, "white")

    @property
    def rank(self) -> int:
        """Sort rank, most severe first."""
        order = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]
        return order.index(self)


@dataclass(frozen=True)
class Finding:
    """A single discovered fact about a scanned target."""

    title: str
    description: str
    severity: Severity
    category: str = "general"
    evidence: str | None = None
    location: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "category": self.category,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "evidence": self.evidence,
            "location": self.location,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Finding:
        """Create from dictionary."""
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            category=data.get("category", "general"),
            severity=Severity(data["severity"]),
            title=data["title"],
            description=data.get("description", ""),
            evidence=data.get("evidence"),
            location=data.get("location"),
            timestamp=(
                datetime.fromisoformat(data["timestamp"])
                if "timestamp" in data
                else datetime.now(timezone.utc)
            ),
        )


@dataclass
class ScanResult:
    """Output of a scan run: target, timing and collected findings."""

    target: str
    profile: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    status: str = "running"
    findings: list[Finding] = field(default_factory=list)
    module_errors: dict[str, str] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        """Elapsed scan time, zero while still running."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def count_by_severity(self) -> dict[Severity, int]:
        """Count findings per severity."""
        counts = {severity: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "target": self.target,
            "profile": self.profile,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "findings": [f.to_dict() for f in self.findings],
            "module_errors": dict(self.module_errors),
        }
