"""
Analysis client for Shadow.

An AnalysisClient is bound to one one-shot session (one model, one
role). Every model call goes through the same path: retry policy with
an overall deadline, empty-response check, and exactly one usage
record once the call reaches a terminal state.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from shadow.ai.errors import EmptyResponseError, InvalidRequestError
from shadow.ai.extractor import HeuristicResponseExtractor, ResponseExtractor
from shadow.ai.prompts import build_analysis_prompt, build_query_prompt
from shadow.ai.retry import RetryPolicy
from shadow.ai.session import OneShotSession
from shadow.ai.usage import UsageRecord, UsageTracker, estimate_tokens
from shadow.models.analysis import AnalysisRequest, AnalysisResult

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str], None]

DEFAULT_ANALYSIS_TIMEOUT = 600.0
DEFAULT_QUERY_TIMEOUT = 300.0


def _retry_reporter(progress: ProgressCallback | None):
    if progress is None:
        return None

    def on_retry(attempt: int, max_attempts: int, delay: float, error: BaseException) -> None:
        progress(f"Attempt {attempt}/{max_attempts} failed ({error}); retrying in {delay:.0f}s")

    return on_retry


class AnalysisClient:
    """
    Produces analysis results and free-form answers from one session.

    Args:
        session: Started one-shot session; the client owns it and closes it.
        agent_name: Role name written into usage records.
        model: Model identifier written into usage records.
        tracker: Shared usage tracker (a private one is created if omitted).
        retry_policy: Retry policy (defaults to 3 attempts, 15s base).
        extractor: Response extractor (defaults to the heuristic one).
        analysis_timeout: Overall deadline for analyze(), retries included.
        query_timeout: Overall deadline for query(), retries included.
    """

    def __init__(
        self,
        session: OneShotSession,
        *,
        agent_name: str = "Analyst",
        model: str = "",
        tracker: UsageTracker | None = None,
        retry_policy: RetryPolicy | None = None,
        extractor: ResponseExtractor | None = None,
        analysis_timeout: float = DEFAULT_ANALYSIS_TIMEOUT,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> None:
        self._session = session
        self.agent_name = agent_name
        self.model = model
        self.tracker = tracker if tracker is not None else UsageTracker()
        self.retry_policy = retry_policy or RetryPolicy()
        self.extractor = extractor or HeuristicResponseExtractor()
        self.analysis_timeout = analysis_timeout
        self.query_timeout = query_timeout

    @staticmethod
    def build_prompt(request: AnalysisRequest) -> str:
        """Build the analysis prompt for a request."""
        return build_analysis_prompt(request.target, request.findings)

    async def complete(
        self,
        prompt: str,
        *,
        timeout: float | None = None,
        operation: str = "analysis",
        progress: ProgressCallback | None = None,
    ) -> str:
        """
        Send a prompt under the retry policy and return the raw text.

        Raises:
            RetriesExhaustedError: Every attempt failed transiently.
            DeadlineExceededError: The overall deadline expired.
            AnalysisError: A fatal error on the first attempt.
        """

        async def attempt() -> str:
            text = await self._session.run(prompt)
            if not text or not text.strip():
                raise EmptyResponseError()
            return text

        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        try:
            text = await self.retry_policy.run(
                attempt,
                timeout=timeout,
                operation=operation,
                on_retry=_retry_reporter(progress),
            )
        except Exception as e:
            self._record(prompt, "", start, started_at, error=e)
            logger.error(
                "model_call_failed",
                agent=self.agent_name,
                model=self.model,
                operation=operation,
                error=str(e)[:200],
            )
            raise

        self._record(prompt, text, start, started_at)
        return text

    def _record(
        self,
        prompt: str,
        response: str,
        start: float,
        started_at: datetime,
        error: Exception | None = None,
    ) -> None:
        self.tracker.record(
            UsageRecord(
                model=self.model,
                agent=self.agent_name,
                input_tokens=estimate_tokens(prompt),
                output_tokens=estimate_tokens(response),
                duration=time.monotonic() - start,
                success=error is None,
                error=str(error) if error is not None else None,
                started_at=started_at,
                ended_at=datetime.now(timezone.utc),
            )
        )

    async def analyze(
        self,
        request: AnalysisRequest,
        progress: ProgressCallback | None = None,
    ) -> AnalysisResult:
        """
        Analyze findings for a target.

        Raises:
            InvalidRequestError: The target is empty.
        """
        if not request.target or not request.target.strip():
            raise InvalidRequestError("target must not be empty")

        logger.info(
            "analysis_started",
            agent=self.agent_name,
            model=self.model,
            target=request.target,
            findings=len(request.findings),
        )

        text = await self.complete(
            self.build_prompt(request),
            timeout=self.analysis_timeout,
            operation="analysis",
            progress=progress,
        )
        return self.extractor.extract(text, request.target)

    async def query(
        self,
        target: str,
        question: str,
        progress: ProgressCallback | None = None,
    ) -> str:
        """Ask a free-form question about a target; no extraction."""
        if not question or not question.strip():
            raise InvalidRequestError("question must not be empty")

        return await self.complete(
            build_query_prompt(target, question),
            timeout=self.query_timeout,
            operation="query",
            progress=progress,
        )

    async def close(self) -> None:
        await self._session.close()
