"""
Unit tests for Shadow data models.
"""

import dataclasses

import pytest

from shadow.models import (
    AgentType,
    AnalysisRequest,
    AnalysisResult,
    Finding,
    Profile,
    Recommendation,
    Severity,
    ThinkingDepth,
    get_agent_by_type,
    get_default_agents,
)


class TestFinding:
    """Finding model."""

    def test_is_immutable(self):
        finding = Finding(title="t", description="d", severity=Severity.HIGH)

        with pytest.raises(dataclasses.FrozenInstanceError):
            finding.title = "changed"

    def test_dict_roundtrip_keeps_fields(self):
        finding = Finding(
            title="XSS",
            description="Reflected",
            severity=Severity.MEDIUM,
            category="xss",
            evidence="<script>",
            location="/search",
        )

        restored = Finding.from_dict(finding.to_dict())

        assert restored == finding

    def test_severity_rank(self):
        ordered = sorted(Severity, key=lambda s: s.rank)
        assert ordered[0] == Severity.CRITICAL
        assert ordered[-1] == Severity.INFO


class TestAnalysisModels:
    """Request and result models."""

    def test_profile_fallback(self):
        assert Profile.from_name("DEEP") == Profile.DEEP
        assert Profile.from_name("nonsense") == Profile.STANDARD
        assert Profile.from_name(None) == Profile.STANDARD

    def test_request_normalises_inputs(self):
        finding = Finding(title="t", description="d", severity=Severity.LOW)
        request = AnalysisRequest("example.com", [finding], "quick")

        assert request.findings == (finding,)
        assert request.profile == Profile.QUICK

    @pytest.mark.parametrize("score,expected", [(-5, 0), (0, 0), (87, 87), (100, 100), (250, 100)])
    def test_result_clamps_risk_score(self, score, expected):
        assert AnalysisResult(target="t", summary="s", risk_score=score).risk_score == expected

    def test_result_to_dict(self):
        result = AnalysisResult(
            target="example.com",
            summary="ok",
            critical_issues=["- one"],
            recommendations=[Recommendation(title="- fix", description="- fix")],
        )

        data = result.to_dict()

        assert data["critical_issues"] == ["- one"]
        assert data["recommendations"][0]["priority"] == "medium"
        assert data["risk_score"] == 50


class TestAgentCatalogue:
    """Default agents."""

    def test_five_agents(self):
        agents = get_default_agents()

        assert len(agents) == 5
        assert {a.type for a in agents} == set(AgentType)

    def test_quick_scanner_is_cheap_and_shallow(self):
        quick = get_agent_by_type(AgentType.QUICK_SCAN)

        assert "haiku" in quick.model
        assert quick.thinking == ThinkingDepth.LOW

    def test_exploitation_uses_most_capable_model(self):
        assert "opus" in get_agent_by_type(AgentType.EXPLOITATION).model

    def test_thinking_depth_normalize(self):
        assert ThinkingDepth.normalize("LOW") == ThinkingDepth.LOW
        assert ThinkingDepth.normalize("medium") == ThinkingDepth.HIGH
