"""
Shadow configuration settings using Pydantic.

This module provides type-safe configuration management with validation,
environment variable support, and nested configuration structures.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from shadow.models.agent import ModelTier


class ModelConfig(BaseModel):
    """Claude session configuration."""

    default_model: str = Field(
        default=ModelTier.SONNET.value,
        description="Model used by single-client commands (query, plan)",
    )
    max_tokens: int = Field(
        default=8192,
        ge=1,
        le=64000,
        description="Maximum tokens in response",
    )
    request_timeout: float = Field(
        default=420.0,
        ge=30.0,
        le=900.0,
        description="Per-request HTTP timeout in seconds",
    )
    thinking_budget: int = Field(
        default=4096,
        ge=1024,
        le=32000,
        description="Extended thinking budget used for high thinking depth",
    )


class RetryConfig(BaseModel):
    """Retry and deadline configuration for model calls."""

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempt ceiling per model call",
    )
    base_delay_seconds: float = Field(
        default=15.0,
        ge=0.0,
        le=300.0,
        description="Backoff base; the nth retry waits base * n seconds",
    )
    analysis_timeout_seconds: float = Field(
        default=600.0,
        ge=1.0,
        le=3600.0,
        description="Overall deadline for an analysis call, retries included",
    )
    query_timeout_seconds: float = Field(
        default=300.0,
        ge=1.0,
        le=3600.0,
        description="Overall deadline for a short query, retries included",
    )


class PermissionConfig(BaseModel):
    """Privileged command execution configuration."""

    privilege_backend: str = Field(
        default="sudo",
        description="Binary used to elevate privileged reconnaissance commands",
    )
    command_timeout_seconds: float = Field(
        default=600.0,
        ge=1.0,
        le=7200.0,
        description="Timeout for an approved privileged command",
    )


class OutputConfig(BaseModel):
    """Output configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )
    max_recommendations_shown: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Recommendations printed by the scan command",
    )


class ShadowSettings(BaseSettings):
    """
    Main Shadow configuration.

    Settings are loaded from environment variables with the SHADOW_ prefix,
    or from a .env file in the current directory. Nested values use a
    double underscore, e.g. SHADOW_RETRY__MAX_ATTEMPTS=5.

    Authentication:
    - SHADOW_ANTHROPIC_API_KEY or ANTHROPIC_API_KEY: API key
    - SHADOW_ANTHROPIC_AUTH_TOKEN: OAuth bearer token
    """

    model_config = SettingsConfigDict(
        env_prefix="SHADOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    anthropic_api_key: SecretStr | None = Field(
        default=None,
        description="Anthropic API key (falls back to ANTHROPIC_API_KEY)",
    )
    anthropic_auth_token: SecretStr | None = Field(
        default=None,
        description="OAuth bearer token for Claude subscription access",
    )

    model: ModelConfig = Field(default_factory=ModelConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    permissions: PermissionConfig = Field(default_factory=PermissionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def get_api_key(self) -> str | None:
        """Get the Anthropic API key as a string if configured."""
        if self.anthropic_api_key:
            return self.anthropic_api_key.get_secret_value()
        return None

    def get_auth_token(self) -> str | None:
        """Get the OAuth token as a string if configured."""
        if self.anthropic_auth_token:
            return self.anthropic_auth_token.get_secret_value()
        return None


@lru_cache(maxsize=1)
def get_settings() -> ShadowSettings:
    """Load settings once per process."""
    return ShadowSettings()
