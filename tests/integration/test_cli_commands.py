"""
Integration tests for CLI commands.

Tests the shadow CLI interface, command parsing, the authorization
prompt and the AI analysis flow against scripted sessions.
"""

import pytest
from rich.console import Console
from typer.testing import CliRunner

import shadow.cli.main as cli_main
from shadow.ai.errors import RateLimitError, SessionStartError
from shadow.cli.main import app
from shadow.config.settings import ShadowSettings
from shadow.models.agent import get_default_agents

runner = CliRunner()

ANALYSIS_TEXT = """## Executive Summary
The target exposes an outdated web server.

## Critical Issues
- Apache 2.4.49 path traversal (CVE-2021-41773)

## Risk Score
Risk Score: 72/100

## Prioritized Recommendations
1. Upgrade Apache
"""

PLAN_TEXT = """### OVERVIEW
Web-first reconnaissance.

### PHASE 1: Discovery
Priority: HIGH
Description: Find live services
Tools:
- nmap (requires root: yes) - SYN port scan
- dig (requires root: no) - DNS records

### REASONING
Start with the network surface.
"""


class ScriptedSession:
    """Session that returns canned text and records prompts."""

    def __init__(self, options, script):
        self.options = options
        self.script = script
        self.prompts = []

    async def run(self, prompt):
        self.prompts.append(prompt)
        outcome = self.script
        if isinstance(outcome, list):
            outcome = outcome[min(len(self.prompts), len(outcome)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self):
        pass


@pytest.fixture
def settings(monkeypatch):
    """Fresh settings that ignore any local .env file."""
    monkeypatch.delenv("SHADOW_RETRY__MAX_ATTEMPTS", raising=False)
    monkeypatch.delenv("SHADOW_RETRY__BASE_DELAY_SECONDS", raising=False)
    settings = ShadowSettings(_env_file=None)
    monkeypatch.setattr(cli_main, "get_settings", lambda: settings)
    return settings


@pytest.fixture
def wide_console(monkeypatch):
    """Render CLI output at a fixed width so tables do not wrap."""
    console = Console(width=200)
    monkeypatch.setattr(cli_main, "console", console)
    return console


@pytest.fixture
def scripted_factory(monkeypatch, settings):
    """Replace the Anthropic session factory; returns the sessions it creates."""
    sessions = []

    def install(script):
        def factory_from_settings(_settings):
            def factory(options):
                session = ScriptedSession(options, script)
                sessions.append(session)
                return session

            return factory

        monkeypatch.setattr(cli_main, "session_factory_from_settings", factory_from_settings)
        return sessions

    return install


@pytest.mark.integration
class TestCLIBasicCommands:
    """Help, version and inspection commands."""

    def test_cli_help_command(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "Shadow" in result.stdout
        assert "scan" in result.stdout

    def test_cli_version_command(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "Shadow version" in result.stdout

    def test_agents_command(self, wide_console):
        result = runner.invoke(app, ["agents"])

        assert result.exit_code == 0
        for agent in get_default_agents():
            assert agent.name in result.stdout

    def test_config_command(self, settings):
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "Current Configuration" in result.stdout
        assert "Max Attempts" in result.stdout

    def test_auth_status_without_credentials(self, monkeypatch, settings):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_AUTH_TOKEN", raising=False)

        result = runner.invoke(app, ["auth-status"])

        assert result.exit_code == 1
        assert "Not authenticated" in result.stdout

    def test_auth_status_with_key(self, monkeypatch, settings):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test-key-12345")

        result = runner.invoke(app, ["auth-status"])

        assert result.exit_code == 0
        assert "Authenticated" in result.stdout


@pytest.mark.integration
class TestCLIScanCommand:
    """The scan command with and without AI analysis."""

    def test_scan_help(self):
        result = runner.invoke(app, ["scan", "--help"])

        assert result.exit_code == 0
        assert "--profile" in result.stdout
        assert "--ai-analysis" in result.stdout

    def test_scan_without_ai(self, settings):
        result = runner.invoke(app, ["scan", "example.com", "--yes", "-p", "quick"])

        assert result.exit_code == 0
        assert "Scan Results" in result.stdout
        assert "Profile: quick" in result.stdout
        assert "AI Analysis" not in result.stdout

    def test_scan_declined(self, settings):
        result = runner.invoke(app, ["scan", "example.com"], input="n\n")

        assert result.exit_code == 1
        assert "Scan cancelled" in result.stdout
        assert "Scan Results" not in result.stdout

    def test_scan_unknown_profile_falls_back(self, settings):
        result = runner.invoke(app, ["scan", "example.com", "--yes", "-p", "extreme"])

        assert result.exit_code == 0
        assert "Unknown profile" in result.stdout
        assert "Profile: standard" in result.stdout

    def test_scan_with_ai_analysis(self, scripted_factory):
        sessions = scripted_factory(ANALYSIS_TEXT)

        result = runner.invoke(app, ["scan", "example.com", "--yes", "--ai-analysis"])

        assert result.exit_code == 0, result.stdout
        assert "AI Analysis" in result.stdout
        assert "72/100" in result.stdout
        assert "AI Usage" in result.stdout
        # one session per catalogue agent, only the standard agent is asked
        assert len(sessions) == 5
        assert sum(len(s.prompts) for s in sessions) == 1

    def test_scan_ai_session_failure(self, monkeypatch, settings):
        def factory_from_settings(_settings):
            def factory(options):
                raise SessionStartError("no Anthropic credentials found")

            return factory

        monkeypatch.setattr(cli_main, "session_factory_from_settings", factory_from_settings)

        result = runner.invoke(app, ["scan", "example.com", "--yes", "-a"])

        assert result.exit_code == 1
        assert "AI analysis failed" in result.stdout
        assert "shadow auth-status" in result.stdout

    def test_scan_ai_unexpected_error(self, scripted_factory):
        scripted_factory(ValueError("malformed request"))

        result = runner.invoke(app, ["scan", "example.com", "--yes", "-a", "-p", "quick"])

        assert result.exit_code == 1
        assert "malformed request" in result.stdout
        assert "No AI usage recorded" not in result.stdout


@pytest.mark.integration
class TestCLIQueryAndPlan:
    """Single-client commands."""

    def test_query(self, scripted_factory):
        sessions = scripted_factory("Port 22 is exposed; restrict it.")

        result = runner.invoke(app, ["query", "example.com", "what is exposed?"])

        assert result.exit_code == 0, result.stdout
        assert "Port 22 is exposed" in result.stdout
        assert sessions[0].prompts == ["Target: example.com\nQuestion: what is exposed?"]

    def test_query_empty_question(self, scripted_factory):
        scripted_factory("unused")

        result = runner.invoke(app, ["query", "example.com", "   "])

        assert result.exit_code == 1
        assert "question must not be empty" in result.stdout

    def test_plan_skip_approvals(self, scripted_factory):
        scripted_factory(PLAN_TEXT)

        result = runner.invoke(app, ["plan", "example.com", "--skip-approvals"])

        assert result.exit_code == 0, result.stdout
        assert "Reconnaissance Plan" in result.stdout
        assert "Discovery" in result.stdout
        assert "ROOT REQUIRED" in result.stdout
        assert "Permissions:" not in result.stdout

    def test_query_retry_is_shown(self, scripted_factory, settings):
        settings.retry.base_delay_seconds = 0.0
        scripted_factory([RateLimitError(), "Only port 443 is open."])

        result = runner.invoke(app, ["query", "example.com", "what is exposed?"])

        assert result.exit_code == 0, result.stdout
        assert "Attempt 1/3 failed" in result.stdout
        assert "Only port 443 is open." in result.stdout
