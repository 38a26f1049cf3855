"""
Unit tests for heuristic response extraction.
"""

import pytest

from shadow.ai.extractor import (
    HeuristicResponseExtractor,
    ResponseExtractor,
    extract_critical_issues,
    extract_recommendations,
    extract_risk_score,
    extract_summary,
)


class TestRiskScore:
    """Risk score extraction."""

    def test_reads_score_from_risk_score_line(self):
        assert extract_risk_score("Overall\nRisk Score: 87/100\n") == 87

    def test_defaults_when_absent(self):
        assert extract_risk_score("Nothing about scoring here.") == 50

    def test_out_of_range_falls_back_to_default(self):
        assert extract_risk_score("Risk Score: 150") == 50

    def test_out_of_range_line_falls_through_to_later_line(self):
        text = "Risk Score: 150\nAdjusted risk score: 72"
        assert extract_risk_score(text) == 72

    def test_heading_without_digits_is_skipped(self):
        assert extract_risk_score("## Risk Score\nRisk score: 40/100") == 40

    def test_case_insensitive(self):
        assert extract_risk_score("RISK SCORE = 0") == 0

    def test_only_first_number_on_line_counts(self):
        # 100 is in range; the second number is ignored
        assert extract_risk_score("Risk Score: 100 (was 30)") == 100


class TestSummary:
    """Summary extraction."""

    def test_line_after_summary_heading(self):
        text = "# Report\n## Executive Summary\nThe target is exposed.\nMore text"
        assert extract_summary(text) == "The target is exposed."

    def test_falls_back_to_first_line(self):
        assert extract_summary("  First line  \nsecond") == "First line"

    def test_summary_on_last_line_falls_back_to_first_line(self):
        assert extract_summary("intro\nSummary") == "intro"

    def test_empty_text(self):
        assert extract_summary("") == ""


class TestCriticalIssues:
    """Critical issue extraction."""

    def test_collects_bullets_until_recommendations(self):
        text = (
            "## Critical Issues\n"
            "- SQL injection\n"
            "\n"
            "* Exposed admin panel\n"
            "plain prose is skipped\n"
            "## Recommendations\n"
            "- Patch things\n"
        )
        assert extract_critical_issues(text) == ["- SQL injection", "* Exposed admin panel"]

    def test_no_critical_section(self):
        assert extract_critical_issues("- a bullet\n- another") == []


class TestRecommendations:
    """Recommendation extraction."""

    def test_collects_dash_star_and_leading_one(self):
        text = (
            "## Recommendations\n"
            "1. Rotate credentials\n"
            "2. Enable MFA\n"
            "- Add rate limiting\n"
            "* Review logs\n"
        )
        recs = extract_recommendations(text)

        assert [r.title for r in recs] == [
            "1. Rotate credentials",
            "- Add rate limiting",
            "* Review logs",
        ]

    def test_fixed_metadata(self):
        recs = extract_recommendations("Recommendations:\n- Use TLS 1.3")

        assert len(recs) == 1
        rec = recs[0]
        assert rec.title == rec.description == "- Use TLS 1.3"
        assert rec.priority == "medium"
        assert rec.impact == "unknown"
        assert rec.effort == "medium"


class TestHeuristicResponseExtractor:
    """Full extraction."""

    def test_implements_protocol(self):
        assert isinstance(HeuristicResponseExtractor(), ResponseExtractor)

    def test_extracts_well_formed_reply(self, sample_analysis_text):
        result = HeuristicResponseExtractor().extract(sample_analysis_text, "example.com")

        assert result.target == "example.com"
        assert result.summary.startswith("The target exposes a critical SQL injection")
        assert result.risk_score == 87
        assert result.critical_issues == (
            "- SQL injection in the login form",
            "- Missing Content-Security-Policy header",
        )
        assert len(result.recommendations) == 3
        assert result.raw_text == sample_analysis_text

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "\n\n\n",
            "Risk Score: 99999999999999999999999",
            "critical\nrecommendation\n1\n-\n*",
            "\x00\x01 garbage ☃",
        ],
    )
    def test_never_raises(self, text):
        result = HeuristicResponseExtractor().extract(text, "t")

        assert 0 <= result.risk_score <= 100
