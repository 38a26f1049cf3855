"""
Agent role definitions for Shadow.

Each agent binds a role to a model and a thinking depth. The catalogue
is fixed; the manager builds one analysis client per entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ModelTier(str, Enum):
    """Claude models used by the agent catalogue."""

    OPUS = "claude-opus-4-5-20251101"
    SONNET = "claude-sonnet-4-5-20250929"
    HAIKU = "claude-haiku-4-5-20251001"


class ThinkingDepth(str, Enum):
    """How much reasoning budget a session gets."""

    LOW = "low"
    HIGH = "high"

    @classmethod
    def normalize(cls, value: str | ThinkingDepth | None) -> ThinkingDepth:
        """Accept low/high in any case; anything else means HIGH."""
        if isinstance(value, ThinkingDepth):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.HIGH


class AgentType(str, Enum):
    """Specialised analysis roles."""

    QUICK_SCAN = "quick-scan"
    RECON = "reconnaissance"
    VULNERABILITY = "vulnerability"
    EXPLOITATION = "exploitation"
    REPORT = "report"


@dataclass(frozen=True)
class AgentConfig:
    """Role/model pairing for one agent."""

    name: str
    type: AgentType
    model: str
    thinking: ThinkingDepth
    description: str
    use_case: str


DEFAULT_AGENTS: tuple[AgentConfig, ...] = (
    AgentConfig(
        name="Quick Scanner",
        type=AgentType.QUICK_SCAN,
        model=ModelTier.HAIKU.value,
        thinking=ThinkingDepth.LOW,
        description="Fast initial scan analysis",
        use_case="Quick triage and basic vulnerability identification",
    ),
    AgentConfig(
        name="Reconnaissance Analyst",
        type=AgentType.RECON,
        model=ModelTier.SONNET.value,
        thinking=ThinkingDepth.HIGH,
        description="Deep reconnaissance and attack surface analysis",
        use_case="Technology identification, service enumeration, attack surface mapping",
    ),
    AgentConfig(
        name="Vulnerability Researcher",
        type=AgentType.VULNERABILITY,
        model=ModelTier.SONNET.value,
        thinking=ThinkingDepth.HIGH,
        description="Comprehensive vulnerability analysis",
        use_case="OWASP Top 10, CVE research, vulnerability prioritization",
    ),
    AgentConfig(
        name="Exploitation Specialist",
        type=AgentType.EXPLOITATION,
        model=ModelTier.OPUS.value,
        thinking=ThinkingDepth.HIGH,
        description="Advanced exploitation path analysis",
        use_case="Attack chain development, exploitation techniques, proof-of-concept",
    ),
    AgentConfig(
        name="Security Reporter",
        type=AgentType.REPORT,
        model=ModelTier.SONNET.value,
        thinking=ThinkingDepth.HIGH,
        description="Executive and technical report generation",
        use_case="Risk assessment, executive summaries, remediation roadmaps",
    ),
)


def get_default_agents() -> list[AgentConfig]:
    """Return the default agent catalogue."""
    return list(DEFAULT_AGENTS)


def get_agent_by_type(agent_type: AgentType) -> AgentConfig | None:
    """Look up the default configuration for an agent type."""
    for config in DEFAULT_AGENTS:
        if config.type == agent_type:
            return config
    return None
