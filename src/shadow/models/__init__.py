"""
Shadow data models.

This module exports the finding, analysis and agent models shared by
the scanner and AI layers.
"""

from shadow.models.agent import (
    DEFAULT_AGENTS,
    AgentConfig,
    AgentType,
    ModelTier,
    ThinkingDepth,
    get_agent_by_type,
    get_default_agents,
)
from shadow.models.analysis import (
    DEFAULT_RISK_SCORE,
    AnalysisRequest,
    AnalysisResult,
    Profile,
    Recommendation,
    clamp_risk_score,
)
from shadow.models.finding import Finding, ScanResult, Severity

__all__ = [
    # Findings
    "Finding",
    "ScanResult",
    "Severity",
    # Analysis
    "AnalysisRequest",
    "AnalysisResult",
    "Profile",
    "Recommendation",
    "DEFAULT_RISK_SCORE",
    "clamp_risk_score",
    # Agents
    "AgentConfig",
    "AgentType",
    "ModelTier",
    "ThinkingDepth",
    "DEFAULT_AGENTS",
    "get_agent_by_type",
    "get_default_agents",
]
