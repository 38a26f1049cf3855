"""
Response extraction for Shadow.

Turns free-form model output into an AnalysisResult by scanning lines
for a few keywords. The scan is lossy and best-effort: it never raises,
and in the worst case returns the first line as summary, the default
risk score and empty issue/recommendation lists.

Extraction sits behind the ResponseExtractor protocol so a stricter
structured-output mode can replace the heuristic one without touching
AnalysisClient.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

import structlog

from shadow.models.analysis import (
    DEFAULT_RISK_SCORE,
    MAX_RISK_SCORE,
    MIN_RISK_SCORE,
    AnalysisResult,
    Recommendation,
)

logger = structlog.get_logger(__name__)

_DIGITS = re.compile(r"\d+")


@runtime_checkable
class ResponseExtractor(Protocol):
    """Converts raw model text into a structured result."""

    def extract(self, text: str, target: str) -> AnalysisResult:
        ...


def _lines(text: str) -> list[str]:
    return (text or "").splitlines()


def extract_summary(text: str) -> str:
    """Line after the first line mentioning "summary", else the first line."""
    lines = _lines(text)
    for i, line in enumerate(lines):
        if "summary" in line.lower() and i + 1 < len(lines):
            return lines[i + 1].strip()

    if lines:
        return lines[0].strip()
    return ""


def extract_risk_score(text: str) -> int:
    """
    First in-range integer found on a "risk score" line.

    Only the first digit run of each matching line is considered; a line
    whose first number falls outside [0, 100] is skipped.
    """
    for line in _lines(text):
        if "risk score" not in line.lower():
            continue

        match = _DIGITS.search(line)
        if match is None:
            continue

        score = int(match.group())
        if MIN_RISK_SCORE <= score <= MAX_RISK_SCORE:
            return score

    return DEFAULT_RISK_SCORE


def _is_bullet(line: str, markers: tuple[str, ...]) -> bool:
    return line.startswith(markers)


def extract_critical_issues(text: str) -> list[str]:
    """Bullet lines after the first "critical" line, up to the first "recommendation" line."""
    issues: list[str] = []
    in_section = False

    for raw in _lines(text):
        line = raw.strip()
        lowered = line.lower()

        if not in_section:
            if "critical" in lowered:
                in_section = True
            continue

        if "recommendation" in lowered:
            break

        if line and _is_bullet(line, ("-", "*")):
            issues.append(line)

    return issues


def extract_recommendations(text: str) -> list[Recommendation]:
    """
    Bullet lines after the first "recommendation" line.

    Lines starting with "1" are accepted as well, so only the first item
    of a numbered list is picked up. Priority, impact and effort are not
    inferred from the text.
    """
    recommendations: list[Recommendation] = []
    in_section = False

    for raw in _lines(text):
        line = raw.strip()

        if not in_section:
            if "recommendation" in line.lower():
                in_section = True
            continue

        if line and _is_bullet(line, ("-", "*", "1")):
            recommendations.append(
                Recommendation(
                    title=line,
                    description=line,
                    priority="medium",
                    impact="unknown",
                    effort="medium",
                )
            )

    return recommendations


class HeuristicResponseExtractor:
    """Keyword line-scanning extractor."""

    def extract(self, text: str, target: str) -> AnalysisResult:
        text = text or ""
        result = AnalysisResult(
            target=target,
            summary=extract_summary(text),
            risk_score=extract_risk_score(text),
            critical_issues=tuple(extract_critical_issues(text)),
            recommendations=tuple(extract_recommendations(text)),
            raw_text=text,
        )

        logger.debug(
            "response_extracted",
            target=target,
            risk_score=result.risk_score,
            critical_issues=len(result.critical_issues),
            recommendations=len(result.recommendations),
        )

        return result
