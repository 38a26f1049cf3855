"""
Unit tests for the one-shot session wrapper.
"""

from unittest.mock import AsyncMock, Mock

import anthropic
import pytest

from shadow.ai.errors import SessionStartError
from shadow.ai.session import (
    AnthropicSession,
    OneShotSession,
    SessionOptions,
    describe_authentication,
    start_session,
)
from shadow.config.settings import ShadowSettings
from shadow.models.agent import ModelTier, ThinkingDepth


@pytest.fixture
def no_env_credentials(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_AUTH_TOKEN", raising=False)


def _response(*texts):
    return Mock(
        content=[Mock(type="text", text=t) for t in texts] + [Mock(type="thinking", thinking="...")],
        usage=Mock(input_tokens=100, output_tokens=50),
        stop_reason="end_turn",
    )


class TestAnthropicSession:
    """Session construction and request shaping."""

    def test_missing_credentials(self, no_env_credentials):
        with pytest.raises(SessionStartError):
            AnthropicSession(SessionOptions(model=ModelTier.SONNET.value))

    def test_api_key(self, no_env_credentials):
        session = AnthropicSession(SessionOptions(model=ModelTier.SONNET.value), api_key="sk-ant-test")

        assert session.auth_type == "api_key"
        assert isinstance(session, OneShotSession)

    def test_client_timeout_uses_sdk_type(self, no_env_credentials, monkeypatch):
        captured = {}

        def fake_client(**kwargs):
            captured.update(kwargs)
            return Mock()

        monkeypatch.setattr("shadow.ai.session.AsyncAnthropic", fake_client)
        options = SessionOptions(model=ModelTier.SONNET.value, request_timeout=120.0)

        AnthropicSession(options, api_key="sk-ant-test")

        assert isinstance(captured["timeout"], anthropic.Timeout)
        assert captured["timeout"].read == 120.0
        assert captured["max_retries"] == 0

    def test_client_construction_failure(self, no_env_credentials, monkeypatch):
        def broken_client(**kwargs):
            raise TypeError("Invalid timeout argument")

        monkeypatch.setattr("shadow.ai.session.AsyncAnthropic", broken_client)

        with pytest.raises(SessionStartError, match="failed to start session"):
            AnthropicSession(SessionOptions(model=ModelTier.SONNET.value), api_key="sk-ant-test")

    def test_high_thinking_request(self, no_env_credentials):
        options = SessionOptions(
            model=ModelTier.OPUS.value,
            thinking=ThinkingDepth.HIGH,
            system_prompt="be terse",
            max_tokens=8192,
            thinking_budget=4096,
        )
        kwargs = AnthropicSession(options, api_key="sk-ant-test")._request_kwargs("hello")

        assert kwargs["model"] == ModelTier.OPUS.value
        assert kwargs["system"] == "be terse"
        assert kwargs["thinking"] == {"type": "enabled", "budget_tokens": 4096}
        assert kwargs["messages"] == [{"role": "user", "content": "hello"}]

    def test_low_thinking_request(self, no_env_credentials):
        options = SessionOptions(model=ModelTier.HAIKU.value, thinking=ThinkingDepth.LOW)
        kwargs = AnthropicSession(options, api_key="sk-ant-test")._request_kwargs("hello")

        assert "thinking" not in kwargs
        assert "system" not in kwargs

    @pytest.mark.asyncio
    async def test_run_joins_text_blocks(self, no_env_credentials):
        session = AnthropicSession(SessionOptions(model=ModelTier.SONNET.value), api_key="sk-ant-test")
        session._client = Mock()
        session._client.messages.create = AsyncMock(return_value=_response("Hello ", "world"))

        assert await session.run("hi") == "Hello world"


class TestStartSession:
    """Provider selection and auth status."""

    def test_unsupported_provider(self):
        with pytest.raises(SessionStartError):
            start_session(SessionOptions(model="x", provider="openai"))

    def test_uses_settings_key(self, no_env_credentials):
        settings = ShadowSettings(anthropic_api_key="sk-ant-settings")
        session = start_session(SessionOptions(model=ModelTier.SONNET.value), settings)

        assert session.auth_type == "api_key"

    def test_describe_authentication_none(self, no_env_credentials, monkeypatch):
        monkeypatch.delenv("SHADOW_ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("SHADOW_ANTHROPIC_AUTH_TOKEN", raising=False)

        available, message = describe_authentication(None)

        assert available is False
        assert "ANTHROPIC_API_KEY" in message

    def test_describe_authentication_env(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_AUTH_TOKEN", raising=False)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")

        available, message = describe_authentication(None)

        assert available is True
        assert "ANTHROPIC_API_KEY" in message

    def test_describe_authentication_prefers_token(self):
        settings = ShadowSettings(anthropic_auth_token="tok", anthropic_api_key="key")

        available, message = describe_authentication(settings)

        assert available is True
        assert "OAuth" in message
