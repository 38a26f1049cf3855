"""
Reconnaissance planner for Shadow.

Asks the model for a phased reconnaissance plan and parses the markdown
reply into a ReconPlan. Parsing is best-effort: unknown lines are
ignored and a reply without any recognised section yields an empty plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from shadow.ai.client import AnalysisClient, ProgressCallback
from shadow.models.analysis import Profile

logger = structlog.get_logger(__name__)

PLANNER_TIMEOUT = 300.0

PLANNER_SYSTEM_PROMPT = """You are an expert penetration tester and reconnaissance specialist.

Your role is to:
1. Analyze a target URL/domain
2. Plan comprehensive reconnaissance strategy
3. Determine what tools and scans are needed
4. Identify permission requirements (root access, etc.)
5. Prioritize reconnaissance phases
6. Suggest fallback options when tools are unavailable

Consider:
- Target type (web app, API, infrastructure)
- Available tools (nmap, subfinder, whatweb, curl, dig, etc.)
- Permission requirements (root for SYN scans, etc.)
- Information gathering priorities
- OSINT opportunities
- Legal and ethical boundaries

Provide structured, executable reconnaissance plans."""

_ROOT_MARKER = "(requires root:"


def build_plan_prompt(target: str, profile: Profile | str) -> str:
    """Build the planning request for a target."""
    mode = Profile.from_name(profile).value
    return f"""# Reconnaissance Planning Request

## Target
{target}

## Mode
{mode} (quick/standard/deep)

## Available Tools
The following tools may be available:
- nmap (port scanning - requires root for SYN scans, falls back to TCP connect)
- subfinder (subdomain enumeration)
- whatweb (web technology detection)
- curl/wget (HTTP requests)
- dig/nslookup (DNS queries)
- whois (domain information)
- openssl (SSL/TLS analysis)
- built-in HTTP checks (always available, no root needed)

## Task
Create a comprehensive reconnaissance plan for this target.

## Output Format
Provide your plan in the following format:

### OVERVIEW
Brief description of target and reconnaissance approach

### PHASE 1: [Phase Name]
Priority: [critical/high/medium/low]
Description: [What this phase accomplishes]
Tools needed:
- [tool name] (requires root: yes/no) - [purpose]
Expected outputs: [what we'll learn]

### PHASE 2: [Phase Name]
[Same format...]

### PERMISSIONS REQUIRED
- Root access: [yes/no and why]
- Sudo for specific commands: [list if needed]

### FALLBACK OPTIONS
If root not available: [alternative approach]

### ESTIMATED TIME
[time estimate for full reconnaissance]

### REASONING
[Why this approach is optimal for this target]

Be specific about commands and explain your reasoning."""


@dataclass
class ToolRequirement:
    """A tool named by the plan."""

    name: str
    requires_root: bool = False
    purpose: str = ""


@dataclass
class ReconPhase:
    """One phase of the plan."""

    name: str
    priority: str = ""
    description: str = ""
    tools: list[ToolRequirement] = field(default_factory=list)


@dataclass
class ReconPlan:
    """Parsed reconnaissance plan."""

    target: str
    phases: list[ReconPhase] = field(default_factory=list)
    requires_root: bool = False
    reasoning: str = ""

    @property
    def required_tools(self) -> list[str]:
        """Tool names in plan order."""
        return [tool.name for phase in self.phases for tool in phase.tools]

    @property
    def root_tools(self) -> list[ToolRequirement]:
        """Tools that need elevated privileges, first mention only."""
        seen: set[str] = set()
        tools = []
        for phase in self.phases:
            for tool in phase.tools:
                if tool.requires_root and tool.name not in seen:
                    seen.add(tool.name)
                    tools.append(tool)
        return tools


def parse_tool_requirement(line: str) -> ToolRequirement | None:
    """
    Parse a tool line such as ``- nmap (requires root: yes) - Port scanning``.

    Returns:
        The tool, or None when the line carries no tool name.
    """
    line = line.strip()
    idx = line.find(_ROOT_MARKER)
    if idx <= 0:
        return None

    name = line[:idx].strip().removeprefix("-").strip()
    if not name:
        return None

    rest = line[idx:]
    requires_root = "requires root: yes" in rest.lower()

    purpose = ""
    close = rest.find(")")
    if close != -1:
        purpose = rest[close + 1 :].strip().lstrip("-").strip()

    return ToolRequirement(name=name, requires_root=requires_root, purpose=purpose)


def parse_recon_plan(text: str, target: str) -> ReconPlan:
    """Parse the planner's markdown reply."""
    plan = ReconPlan(target=target)
    current: ReconPhase | None = None
    in_permissions = False
    in_reasoning = False
    reasoning: list[str] = []

    for raw in (text or "").splitlines():
        line = raw.strip()

        if line.startswith("### PHASE"):
            if current is not None:
                plan.phases.append(current)
            current = ReconPhase(name=line.removeprefix("###").strip())
            in_permissions = in_reasoning = False
            continue

        if line.startswith("### PERMISSIONS REQUIRED"):
            in_permissions, in_reasoning = True, False
            continue

        if line.startswith("### REASONING"):
            in_permissions, in_reasoning = False, True
            if current is not None:
                plan.phases.append(current)
                current = None
            continue

        if in_permissions and "root access: yes" in line.lower():
            plan.requires_root = True

        if in_reasoning and line and not line.startswith("#"):
            reasoning.append(line)

        if current is None:
            continue

        if line.startswith("Priority:"):
            current.priority = line.removeprefix("Priority:").strip()
        elif line.startswith("Description:"):
            current.description = line.removeprefix("Description:").strip()
        elif line.startswith("- ") and _ROOT_MARKER in line:
            tool = parse_tool_requirement(line)
            if tool is not None:
                current.tools.append(tool)

    if current is not None:
        plan.phases.append(current)

    plan.reasoning = " ".join(reasoning)
    return plan


class ReconPlanner:
    """Plans reconnaissance through a dedicated analysis client."""

    def __init__(self, client: AnalysisClient, timeout: float = PLANNER_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    async def plan(
        self,
        target: str,
        profile: Profile | str = Profile.STANDARD,
        progress: ProgressCallback | None = None,
    ) -> ReconPlan:
        """
        Ask the model for a plan and parse it.

        Raises:
            AnalysisError: The model call failed (after retries where applicable).
        """
        text = await self._client.complete(
            build_plan_prompt(target, profile),
            timeout=self._timeout,
            operation="recon planning",
            progress=progress,
        )
        plan = parse_recon_plan(text, target)

        logger.info(
            "recon_plan_created",
            target=target,
            phases=len(plan.phases),
            requires_root=plan.requires_root,
            tools=len(plan.required_tools),
        )
        return plan

    async def close(self) -> None:
        await self._client.close()
