"""
Multi-agent analysis manager for Shadow.

The manager holds one AnalysisClient per agent role and routes an
analysis request by profile:

- quick    -> Quick Scanner (fast, cheap model)
- standard -> Vulnerability Researcher
- deep     -> Reconnaissance -> Vulnerability -> Exploitation stages

Unknown profiles fall back to standard. The deep profile is a fixed
pipeline of stages; each stage builds its prompt from the request and
the outputs of the stages before it, so the stages run strictly in
order. Only the exploitation stage is optional: if it fails, a
placeholder is used and a warning is attached to the result.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import structlog

from shadow.ai.client import AnalysisClient, ProgressCallback
from shadow.ai.errors import InvalidRequestError, SessionStartError, StageFailedError
from shadow.ai.extractor import HeuristicResponseExtractor, ResponseExtractor
from shadow.ai.prompts import (
    build_exploitation_prompt,
    build_recon_prompt,
    build_system_prompt,
    build_vulnerability_prompt,
)
from shadow.ai.retry import RetryPolicy
from shadow.ai.session import SessionFactory, SessionOptions
from shadow.ai.usage import UsageSummary, UsageTracker, model_short_name
from shadow.config.settings import ShadowSettings
from shadow.models.agent import AgentConfig, AgentType, get_default_agents
from shadow.models.analysis import AnalysisRequest, AnalysisResult, Profile

logger = structlog.get_logger(__name__)

EXPLOITATION_PLACEHOLDER = "Exploitation analysis not available."

PROFILE_AGENTS: dict[Profile, AgentType] = {
    Profile.QUICK: AgentType.QUICK_SCAN,
    Profile.STANDARD: AgentType.VULNERABILITY,
}


@dataclass
class StageContext:
    """Inputs available to a stage's prompt builder."""

    request: AnalysisRequest
    outputs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AnalysisStage:
    """One step of a staged analysis."""

    name: str
    heading: str
    agent_type: AgentType
    build_prompt: Callable[[StageContext], str]
    required: bool = True
    placeholder: str = ""


DEEP_PIPELINE: tuple[AnalysisStage, ...] = (
    AnalysisStage(
        name="recon",
        heading="Reconnaissance Findings",
        agent_type=AgentType.RECON,
        build_prompt=lambda ctx: build_recon_prompt(ctx.request.target, ctx.request.findings),
    ),
    AnalysisStage(
        name="vulnerability",
        heading="Vulnerability Analysis",
        agent_type=AgentType.VULNERABILITY,
        build_prompt=lambda ctx: build_vulnerability_prompt(
            ctx.request.target, ctx.request.findings, ctx.outputs["recon"]
        ),
    ),
    AnalysisStage(
        name="exploitation",
        heading="Exploitation Assessment",
        agent_type=AgentType.EXPLOITATION,
        build_prompt=lambda ctx: build_exploitation_prompt(
            ctx.request.target, ctx.outputs["recon"], ctx.outputs["vulnerability"]
        ),
        required=False,
        placeholder=EXPLOITATION_PLACEHOLDER,
    ),
)


def combine_stage_outputs(stages: Sequence[AnalysisStage], outputs: dict[str, str]) -> str:
    """Join stage outputs under their own top-level headings."""
    return "\n\n".join(f"# {stage.heading}\n{outputs[stage.name]}" for stage in stages)


def agent_type_for_profile(profile: Profile | str | None) -> AgentType | None:
    """Agent serving a single-pass profile; None for the staged deep profile."""
    resolved = Profile.from_name(profile)
    if resolved == Profile.DEEP:
        return None
    return PROFILE_AGENTS[resolved]


class AgentManager:
    """
    Holds one analysis client per agent role.

    All clients share a single UsageTracker so the run's cost summary
    covers every role.
    """

    def __init__(
        self,
        clients: dict[AgentType, AnalysisClient],
        configs: Sequence[AgentConfig],
        tracker: UsageTracker,
        extractor: ResponseExtractor | None = None,
    ) -> None:
        self._clients = dict(clients)
        self._configs = {config.type: config for config in configs}
        self.tracker = tracker
        self.extractor = extractor or HeuristicResponseExtractor()

    @classmethod
    def create(
        cls,
        session_factory: SessionFactory,
        *,
        configs: Sequence[AgentConfig] | None = None,
        settings: ShadowSettings | None = None,
        tracker: UsageTracker | None = None,
        retry_policy: RetryPolicy | None = None,
        extractor: ResponseExtractor | None = None,
    ) -> AgentManager:
        """
        Start one session per agent and wrap each in an AnalysisClient.

        Raises:
            SessionStartError: Any session fails to start. Sessions already
                started are abandoned; the error is fatal and not retried.
        """
        settings = settings or ShadowSettings()
        configs = list(configs) if configs is not None else get_default_agents()
        tracker = tracker if tracker is not None else UsageTracker()
        retry_policy = retry_policy or RetryPolicy.from_config(settings.retry)
        extractor = extractor or HeuristicResponseExtractor()

        clients: dict[AgentType, AnalysisClient] = {}
        for config in configs:
            options = SessionOptions(
                model=config.model,
                thinking=config.thinking,
                system_prompt=build_system_prompt(config.type),
                max_tokens=settings.model.max_tokens,
                thinking_budget=settings.model.thinking_budget,
                request_timeout=settings.model.request_timeout,
            )
            try:
                session = session_factory(options)
            except SessionStartError:
                logger.error("agent_start_failed", agent=config.name, model=config.model)
                raise

            clients[config.type] = AnalysisClient(
                session,
                agent_name=config.name,
                model=config.model,
                tracker=tracker,
                retry_policy=retry_policy,
                extractor=extractor,
                analysis_timeout=settings.retry.analysis_timeout_seconds,
                query_timeout=settings.retry.query_timeout_seconds,
            )

        logger.info("agent_manager_ready", agents=len(clients))
        return cls(clients, configs, tracker, extractor)

    @property
    def agents(self) -> list[AgentConfig]:
        return list(self._configs.values())

    def get_agent(self, agent_type: AgentType) -> AnalysisClient:
        """
        Look up the client for a role.

        Raises:
            InvalidRequestError: No agent of that type is configured.
        """
        client = self._clients.get(agent_type)
        if client is None:
            raise InvalidRequestError(f"agent not available: {agent_type.value}")
        return client

    def get_config(self, agent_type: AgentType) -> AgentConfig | None:
        return self._configs.get(agent_type)

    async def analyze(
        self,
        request: AnalysisRequest,
        progress: ProgressCallback | None = None,
    ) -> AnalysisResult:
        """
        Analyze a request with the agents selected by its profile.

        Raises:
            InvalidRequestError: Empty target or missing agent.
            StageFailedError: A required deep-analysis stage failed.
            AnalysisError: The single-pass call failed.
        """
        if not request.target or not request.target.strip():
            raise InvalidRequestError("target must not be empty")

        agent_type = agent_type_for_profile(request.profile)
        if agent_type is None:
            return await self.run_pipeline(request, DEEP_PIPELINE, progress)

        client = self.get_agent(agent_type)
        _report(progress, f"Using {client.agent_name} ({model_short_name(client.model)})")
        _report_findings(progress, request)
        return await client.analyze(request, progress=progress)

    async def run_pipeline(
        self,
        request: AnalysisRequest,
        stages: Sequence[AnalysisStage],
        progress: ProgressCallback | None = None,
    ) -> AnalysisResult:
        """Run stages in order, then extract from the combined text."""
        ctx = StageContext(request=request)
        warnings: list[str] = []

        _report_findings(progress, request)

        for index, stage in enumerate(stages, 1):
            client = self.get_agent(stage.agent_type)
            _report(
                progress,
                f"Stage {index}/{len(stages)}: {client.agent_name} "
                f"({model_short_name(client.model)})",
            )

            try:
                ctx.outputs[stage.name] = await client.complete(
                    stage.build_prompt(ctx),
                    timeout=client.analysis_timeout,
                    operation=f"{stage.name} stage",
                    progress=progress,
                )
            except Exception as e:
                if stage.required:
                    raise StageFailedError(stage.name, e) from e

                warning = f"{stage.name} stage failed: {e}"
                logger.warning("analysis_stage_degraded", stage=stage.name, error=str(e)[:200])
                _report(progress, f"Warning: {warning}")
                warnings.append(warning)
                ctx.outputs[stage.name] = stage.placeholder

        combined = combine_stage_outputs(stages, ctx.outputs)
        result = self.extractor.extract(combined, request.target)
        return dataclasses.replace(result, warnings=tuple(warnings))

    def usage_summary(self) -> UsageSummary:
        return self.tracker.summary()

    async def close(self) -> None:
        """Close every session."""
        for client in self._clients.values():
            await client.close()

    async def __aenter__(self) -> AgentManager:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _report(progress: ProgressCallback | None, message: str) -> None:
    if progress is not None:
        progress(message)


def _report_findings(progress: ProgressCallback | None, request: AnalysisRequest) -> None:
    if progress is None:
        return
    if not request.findings:
        progress("Analyzing target with no findings")
        return

    progress(f"Analyzing {len(request.findings)} findings")
    for finding in request.findings[:3]:
        progress(f"  [{finding.severity.value}] {finding.title}")
