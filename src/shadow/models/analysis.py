"""
Analysis request/result models for Shadow.

An AnalysisRequest is built per invocation from scan findings; an
AnalysisResult is produced exactly once per successful analysis and is
owned by the caller afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from shadow.models.finding import Finding

DEFAULT_RISK_SCORE = 50
MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 100


class Profile(str, Enum):
    """Depth-of-analysis selector."""

    QUICK = "quick"
    STANDARD = "standard"
    DEEP = "deep"

    @classmethod
    def from_name(cls, name: str | Profile | None) -> Profile:
        """Resolve a profile name, falling back to STANDARD for unknown names."""
        if isinstance(name, Profile):
            return name
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.STANDARD


@dataclass(frozen=True)
class AnalysisRequest:
    """Target plus ordered findings handed to the analysis layer."""

    target: str
    findings: tuple[Finding, ...] = ()
    profile: Profile = Profile.STANDARD

    def __post_init__(self) -> None:
        object.__setattr__(self, "findings", tuple(self.findings))
        object.__setattr__(self, "profile", Profile.from_name(self.profile))


@dataclass(frozen=True)
class Recommendation:
    """A remediation recommendation extracted from model output."""

    title: str
    description: str
    priority: str = "medium"
    impact: str = "unknown"
    effort: str = "medium"

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "effort": self.effort,
        }


def clamp_risk_score(score: int) -> int:
    """Clamp a risk score into [0, 100]."""
    return max(MIN_RISK_SCORE, min(MAX_RISK_SCORE, int(score)))


@dataclass(frozen=True)
class AnalysisResult:
    """
    Structured analysis output.

    The risk score is clamped into [0, 100] on construction; lists are
    stored as tuples so the result cannot be mutated after creation.
    """

    target: str
    summary: str
    risk_score: int = DEFAULT_RISK_SCORE
    critical_issues: tuple[str, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    warnings: tuple[str, ...] = ()
    raw_text: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "risk_score", clamp_risk_score(self.risk_score))
        object.__setattr__(self, "critical_issues", tuple(self.critical_issues))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "target": self.target,
            "summary": self.summary,
            "risk_score": self.risk_score,
            "critical_issues": list(self.critical_issues),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "created_at": self.created_at.isoformat(),
            "warnings": list(self.warnings),
        }
