"""
Scan orchestration for Shadow.

A fixed catalogue of scan modules is selected by profile and run one
after another; their findings feed the analysis layer. Only the basic
reachability module produces a finding today; the header, subdomain
and port modules are placeholders that return nothing.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

import structlog

from shadow.models.analysis import Profile
from shadow.models.finding import Finding, ScanResult, Severity

logger = structlog.get_logger(__name__)


@runtime_checkable
class ScanModule(Protocol):
    """A single scan step."""

    name: str

    async def run(self, target: str) -> list[Finding]:
        ...


class BasicSecurityModule:
    name = "Basic Security"

    async def run(self, target: str) -> list[Finding]:
        return [
            Finding(
                title="Target Reachable",
                description=f"Successfully connected to {target}",
                severity=Severity.INFO,
                category="configuration",
                location=target,
            )
        ]


class HeaderSecurityModule:
    name = "Security Headers"

    async def run(self, target: str) -> list[Finding]:
        return []


class SubdomainModule:
    name = "Subdomain Discovery"

    async def run(self, target: str) -> list[Finding]:
        return []


class PortScanModule:
    name = "Port Scanning"

    async def run(self, target: str) -> list[Finding]:
        return []


def modules_for_profile(profile: Profile | str) -> list[ScanModule]:
    """Module catalogue for a profile; unknown profiles get the standard set."""
    resolved = Profile.from_name(profile)
    modules: list[ScanModule] = [BasicSecurityModule()]
    if resolved in (Profile.STANDARD, Profile.DEEP):
        modules.append(HeaderSecurityModule())
    if resolved == Profile.DEEP:
        modules.extend([SubdomainModule(), PortScanModule()])
    return modules


class ScanOrchestrator:
    """
    Runs scan modules sequentially and collects their findings.

    A failing module is logged and recorded on the result; the remaining
    modules still run.
    """

    def __init__(
        self,
        profile: Profile | str = Profile.STANDARD,
        modules: Sequence[ScanModule] | None = None,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self.profile = Profile.from_name(profile)
        self.modules = list(modules) if modules is not None else modules_for_profile(self.profile)
        self._progress = progress

    def _report(self, message: str) -> None:
        if self._progress is not None:
            self._progress(message)

    async def run(self, target: str) -> ScanResult:
        result = ScanResult(target=target, profile=self.profile.value)
        logger.info("scan_started", target=target, profile=self.profile.value, modules=len(self.modules))

        for module in self.modules:
            self._report(f"Running {module.name} module")
            try:
                findings = await module.run(target)
            except Exception as e:
                logger.warning("scan_module_failed", module=module.name, error=str(e))
                result.module_errors[module.name] = str(e)
                self._report(f"{module.name} module error: {e}")
                continue

            result.findings.extend(findings)
            self._report(f"{module.name}: {len(findings)} findings")

        result.finished_at = datetime.now(timezone.utc)
        result.status = "completed"
        logger.info(
            "scan_completed",
            target=target,
            findings=len(result.findings),
            errors=len(result.module_errors),
            duration=result.duration_seconds,
        )
        return result
