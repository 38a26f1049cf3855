"""
Shadow AI analysis layer.

Sessions, retry policy, prompt building, response extraction, usage
tracking and the multi-agent manager.
"""

from shadow.ai.agents import DEEP_PIPELINE, AgentManager, AnalysisStage
from shadow.ai.client import AnalysisClient
from shadow.ai.errors import (
    AnalysisError,
    DeadlineExceededError,
    EmptyResponseError,
    InvalidRequestError,
    RateLimitError,
    RetriesExhaustedError,
    SessionStartError,
    StageFailedError,
)
from shadow.ai.extractor import HeuristicResponseExtractor, ResponseExtractor
from shadow.ai.planner import ReconPlan, ReconPlanner
from shadow.ai.retry import RetryPolicy, is_retryable_error
from shadow.ai.session import (
    AnthropicSession,
    OneShotSession,
    SessionOptions,
    describe_authentication,
    start_session,
)
from shadow.ai.usage import UsageRecord, UsageSummary, UsageTracker

__all__ = [
    # Clients
    "AnalysisClient",
    "AgentManager",
    "AnalysisStage",
    "DEEP_PIPELINE",
    "ReconPlanner",
    "ReconPlan",
    # Sessions
    "OneShotSession",
    "AnthropicSession",
    "SessionOptions",
    "start_session",
    "describe_authentication",
    # Retry
    "RetryPolicy",
    "is_retryable_error",
    # Extraction
    "ResponseExtractor",
    "HeuristicResponseExtractor",
    # Usage
    "UsageRecord",
    "UsageSummary",
    "UsageTracker",
    # Errors
    "AnalysisError",
    "DeadlineExceededError",
    "EmptyResponseError",
    "InvalidRequestError",
    "RateLimitError",
    "RetriesExhaustedError",
    "SessionStartError",
    "StageFailedError",
]
