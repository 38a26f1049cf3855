"""
Error taxonomy for the analysis layer.

Fatal errors propagate on the first attempt; retryable errors are
retried by RetryPolicy and, once the attempt ceiling is reached, are
wrapped in RetriesExhaustedError so callers can tell the two apart.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base exception for analysis errors."""

    #: True when retrying later may help (rate limits, outages).
    transient: bool = False

    @property
    def remediation(self) -> str:
        """Short advice shown to the operator."""
        return "Check the configuration and try again."


class InvalidRequestError(AnalysisError):
    """Raised when an analysis request is malformed (e.g. empty target)."""

    pass


class SessionStartError(AnalysisError):
    """Raised when the model session cannot be created (credentials, config)."""

    @property
    def remediation(self) -> str:
        return "Run 'shadow auth-status' and verify ANTHROPIC_API_KEY or the configured token."


class EmptyResponseError(AnalysisError):
    """Raised when the model returns only whitespace."""

    transient = True

    def __init__(self, message: str = "empty AI response") -> None:
        super().__init__(message)


class RateLimitError(AnalysisError):
    """Raised when rate limited by the provider."""

    transient = True

    def __init__(self, message: str = "rate limit exceeded") -> None:
        super().__init__(message)


class DeadlineExceededError(AnalysisError):
    """Raised when the overall deadline of a call expires; never retried."""

    transient = True

    def __init__(self, timeout: float, operation: str = "analysis") -> None:
        super().__init__(f"{operation} deadline exceeded after {timeout:.0f}s")
        self.timeout = timeout
        self.operation = operation

    @property
    def remediation(self) -> str:
        return "Try a smaller profile (--profile quick) or raise SHADOW_RETRY__ANALYSIS_TIMEOUT_SECONDS."


class RetriesExhaustedError(AnalysisError):
    """Raised after every attempt failed for a retryable reason."""

    transient = True

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"max retries exceeded after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error

    @property
    def remediation(self) -> str:
        return "The provider kept failing transiently (rate limit or network). Wait a few minutes and retry."


class StageFailedError(AnalysisError):
    """Raised when a required stage of a multi-stage analysis fails."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} stage failed: {cause}")
        self.stage = stage
        self.cause = cause
        self.transient = getattr(cause, "transient", False)

    @property
    def remediation(self) -> str:
        if isinstance(self.cause, AnalysisError):
            return self.cause.remediation
        return super().remediation
