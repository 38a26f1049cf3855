"""
One-shot Claude session wrapper for Shadow.

A session is a stateless text-in/text-out completion channel bound to
one model, thinking depth and system prompt. The analysis layer only
depends on the ``OneShotSession`` protocol; ``AnthropicSession`` is the
production implementation on top of the Anthropic SDK.

Authentication:
- API Key: SHADOW_ANTHROPIC_API_KEY or ANTHROPIC_API_KEY
- OAuth: SHADOW_ANTHROPIC_AUTH_TOKEN or ANTHROPIC_AUTH_TOKEN
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import anthropic
import structlog
from anthropic import AsyncAnthropic

from shadow.ai.errors import RateLimitError, SessionStartError
from shadow.models.agent import ThinkingDepth

if TYPE_CHECKING:
    from shadow.config.settings import ShadowSettings

logger = structlog.get_logger(__name__)

SUPPORTED_PROVIDERS = ("anthropic",)


@dataclass(frozen=True)
class SessionOptions:
    """Options for starting a one-shot session."""

    model: str
    provider: str = "anthropic"
    thinking: ThinkingDepth = ThinkingDepth.HIGH
    system_prompt: str | None = None
    app_name: str = "shadow"
    max_tokens: int = 8192
    thinking_budget: int = 4096
    request_timeout: float = 420.0


@runtime_checkable
class OneShotSession(Protocol):
    """Text completion channel: give it a prompt, get text back."""

    async def run(self, prompt: str) -> str:
        ...

    async def close(self) -> None:
        ...


SessionFactory = Callable[[SessionOptions], OneShotSession]


class AnthropicSession:
    """
    One-shot session backed by the Anthropic Messages API.

    SDK-level retries are disabled; retrying is the caller's RetryPolicy's
    job so attempts stay observable and bounded.
    """

    def __init__(
        self,
        options: SessionOptions,
        api_key: str | None = None,
        auth_token: str | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            options: Model, thinking depth and system prompt.
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY).
            auth_token: OAuth token (falls back to ANTHROPIC_AUTH_TOKEN).

        Raises:
            SessionStartError: If no credentials are available or the
                client cannot be constructed.
        """
        self._options = options

        client_kwargs: dict[str, Any] = {
            "max_retries": 0,
            "timeout": anthropic.Timeout(options.request_timeout, connect=60.0),
        }

        if auth_token:
            client_kwargs["auth_token"] = auth_token
            self._auth_type = "oauth"
        elif api_key:
            client_kwargs["api_key"] = api_key
            self._auth_type = "api_key"
        elif os.environ.get("ANTHROPIC_AUTH_TOKEN"):
            self._auth_type = "oauth"
        elif os.environ.get("ANTHROPIC_API_KEY"):
            self._auth_type = "api_key"
        else:
            raise SessionStartError(
                "no Anthropic credentials found (set ANTHROPIC_API_KEY or SHADOW_ANTHROPIC_AUTH_TOKEN)"
            )

        try:
            self._client = AsyncAnthropic(**client_kwargs)
        except (anthropic.AnthropicError, TypeError, ValueError) as e:
            raise SessionStartError(f"failed to start session: {e}") from e

        logger.info(
            "session_started",
            app=options.app_name,
            model=options.model,
            thinking=options.thinking.value,
            auth_type=self._auth_type,
        )

    @property
    def options(self) -> SessionOptions:
        return self._options

    @property
    def auth_type(self) -> str:
        return self._auth_type

    def _request_kwargs(self, prompt: str) -> dict[str, Any]:
        options = self._options
        kwargs: dict[str, Any] = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        if options.system_prompt:
            kwargs["system"] = options.system_prompt

        if options.thinking == ThinkingDepth.HIGH:
            # max_tokens must leave room for the answer after thinking
            budget = min(options.thinking_budget, options.max_tokens - 1024)
            if budget >= 1024:
                kwargs["thinking"] = {"type": "enabled", "budget_tokens": budget}

        return kwargs

    async def run(self, prompt: str) -> str:
        """
        Send one prompt and return the concatenated text blocks.

        Raises:
            SessionStartError: Authentication or permission rejected by the API.
            RateLimitError: The provider rate limited the request.
            anthropic.APIError: Any other provider failure, unchanged.
        """
        try:
            response = await self._client.messages.create(**self._request_kwargs(prompt))
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise SessionStartError(f"authentication rejected: {e}") from e
        except anthropic.RateLimitError as e:
            raise RateLimitError(f"rate limit exceeded: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        logger.debug(
            "session_response",
            model=self._options.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=response.stop_reason,
        )

        return text

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> AnthropicSession:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def start_session(
    options: SessionOptions,
    settings: ShadowSettings | None = None,
) -> OneShotSession:
    """
    Start a one-shot session for the configured provider.

    Raises:
        SessionStartError: Unsupported provider or missing credentials.
    """
    if options.provider not in SUPPORTED_PROVIDERS:
        raise SessionStartError(f"unsupported provider: {options.provider}")

    api_key = settings.get_api_key() if settings else None
    auth_token = settings.get_auth_token() if settings else None
    return AnthropicSession(options, api_key=api_key, auth_token=auth_token)


def session_factory_from_settings(settings: ShadowSettings) -> SessionFactory:
    """Bind ``start_session`` to a settings object."""

    def factory(options: SessionOptions) -> OneShotSession:
        return start_session(options, settings)

    return factory


def describe_authentication(settings: ShadowSettings | None = None) -> tuple[bool, str]:
    """
    Report which authentication method is available.

    Returns:
        Tuple of (available, human-readable description).
    """
    if settings and settings.get_auth_token():
        return True, "OAuth token configured (SHADOW_ANTHROPIC_AUTH_TOKEN)"
    if settings and settings.get_api_key():
        return True, "API key configured (SHADOW_ANTHROPIC_API_KEY)"
    if os.environ.get("ANTHROPIC_AUTH_TOKEN"):
        return True, "OAuth token found in ANTHROPIC_AUTH_TOKEN"
    if os.environ.get("ANTHROPIC_API_KEY"):
        return True, "API key found in ANTHROPIC_API_KEY"
    return False, "No authentication found - set ANTHROPIC_API_KEY or SHADOW_ANTHROPIC_AUTH_TOKEN"
