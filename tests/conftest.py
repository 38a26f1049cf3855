"""
Pytest fixtures and configuration for the Shadow test suite.
"""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from shadow.ai.retry import RetryPolicy
from shadow.ai.session import SessionOptions
from shadow.ai.usage import UsageTracker
from shadow.models.finding import Finding, Severity

# ============================================================================
# Fake Sessions
# ============================================================================


class FakeSession:
    """
    One-shot session that replays a script.

    Each script entry is either the text to return or an exception to
    raise. Once the script is exhausted the last entry repeats.
    """

    def __init__(self, script: Sequence[str | BaseException], options: SessionOptions | None = None):
        self.script = list(script)
        self.options = options
        self.prompts: list[str] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def run(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts), len(self.script)) - 1
        outcome = self.script[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session_cls():
    """The scripted session class."""
    return FakeSession


# ============================================================================
# Retry Fixtures
# ============================================================================


@pytest.fixture
def sleep_log():
    """Delays passed to the fake sleep, in order."""
    return []


@pytest.fixture
def fake_sleep(sleep_log):
    """Sleep replacement that records the delay and returns immediately."""

    async def sleep(delay: float) -> None:
        sleep_log.append(delay)

    return sleep


@pytest.fixture
def retry_policy(fake_sleep):
    """Default policy (3 attempts, 15s base) that never actually waits."""
    return RetryPolicy(max_attempts=3, base_delay=15.0, sleep=fake_sleep)


@pytest.fixture
def tracker():
    return UsageTracker()


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def sample_findings():
    """A small mixed-severity finding list."""
    return [
        Finding(
            title="SQL Injection in login form",
            description="The username parameter is concatenated into a SQL query.",
            severity=Severity.CRITICAL,
            category="injection",
            evidence="' OR '1'='1 returned all users",
            location="https://example.com/login",
        ),
        Finding(
            title="Missing Content-Security-Policy",
            description="No CSP header is sent.",
            severity=Severity.MEDIUM,
            category="headers",
            location="https://example.com/",
        ),
        Finding(
            title="Target Reachable",
            description="Successfully connected to example.com",
            severity=Severity.INFO,
            category="configuration",
        ),
        Finding(
            title="Server banner disclosed",
            description="Server: nginx/1.18.0",
            severity=Severity.LOW,
            category="information",
        ),
    ]


SAMPLE_ANALYSIS = """## Executive Summary
The target exposes a critical SQL injection that allows authentication bypass.

## Critical Issues
- SQL injection in the login form
- Missing Content-Security-Policy header

## Risk Score
Risk Score: 87/100
Exploitation is trivial and unauthenticated.

## Prioritized Recommendations
- Use parameterized queries for all database access
- Add a strict Content-Security-Policy
* Hide the server version banner

## Attack Chains
Login bypass leads to admin panel access.
"""


@pytest.fixture
def sample_analysis_text():
    """Well-formed model reply following the requested headings."""
    return SAMPLE_ANALYSIS
