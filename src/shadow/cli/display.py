"""
Rich display components for the Shadow CLI.

Each component implements ``__rich__`` so it can be passed straight to
``console.print``.
"""

from __future__ import annotations

from rich.box import ROUNDED, SIMPLE
from rich.console import Group, RenderableType
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shadow.ai.planner import ReconPlan
from shadow.ai.usage import UsageSummary, format_tokens, model_short_name
from shadow.models.agent import AgentConfig
from shadow.models.analysis import AnalysisResult
from shadow.models.finding import ScanResult, Severity

PRIORITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
}


def risk_style(score: int) -> str:
    """Colour for a 0-100 risk score."""
    if score >= 75:
        return "bold red"
    if score >= 50:
        return "yellow"
    if score >= 25:
        return "cyan"
    return "green"


class FindingsSummary:
    """Summary panel of scan findings by severity."""

    def __init__(self, result: ScanResult):
        self.result = result

    def __rich__(self) -> Panel:
        counts = self.result.count_by_severity()

        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Severity", width=10)
        table.add_column("Count", justify="right", width=4)

        for severity in Severity:
            count = counts[severity]
            if count > 0:
                table.add_row(
                    Text(severity.value.upper(), style=f"bold {severity.color}"),
                    Text(str(count), style=severity.color),
                )

        table.add_row(Text("TOTAL", style="bold"), Text(str(len(self.result.findings)), style="bold"))

        body: list[RenderableType] = [table]
        for name, error in self.result.module_errors.items():
            body.append(Text(f"{name}: {error}", style="yellow"))

        return Panel(
            Group(*body),
            title=f"[bold]Scan Results[/bold] [dim]({self.result.duration_seconds:.1f}s)[/dim]",
            border_style="cyan",
            box=ROUNDED,
        )


class AnalysisPanel:
    """Rendered AI analysis: summary, risk score, issues, recommendations."""

    def __init__(self, result: AnalysisResult, max_recommendations: int = 5):
        self.result = result
        self.max_recommendations = max_recommendations

    def __rich__(self) -> Panel:
        result = self.result
        parts: list[RenderableType] = []

        parts.append(Text("Summary", style="bold"))
        parts.append(Text(result.summary or "No summary available", style="white"))
        parts.append(Text())

        risk = Text("Risk Score: ", style="bold")
        risk.append(f"{result.risk_score}/100", style=risk_style(result.risk_score))
        parts.append(risk)

        if result.critical_issues:
            parts.append(Text())
            parts.append(Text("Critical Issues", style="bold red"))
            for issue in result.critical_issues:
                parts.append(Text(f"  {issue}"))

        if result.recommendations:
            parts.append(Text())
            parts.append(Text("Recommendations", style="bold green"))
            shown = result.recommendations[: self.max_recommendations]
            for i, rec in enumerate(shown, 1):
                line = Text(f"  {i}. ")
                line.append(f"[{rec.priority}] ", style=PRIORITY_STYLES.get(rec.priority, "white"))
                line.append(rec.title)
                parts.append(line)
            hidden = len(result.recommendations) - len(shown)
            if hidden > 0:
                parts.append(Text(f"  ... and {hidden} more", style="dim"))

        for warning in result.warnings:
            parts.append(Text(f"Warning: {warning}", style="yellow"))

        return Panel(
            Group(*parts),
            title=f"[bold magenta]AI Analysis[/bold magenta] [dim]{rich_escape(result.target)}[/dim]",
            border_style="magenta",
            box=ROUNDED,
        )


class UsageSummaryDisplay:
    """Token, cost and duration totals with per-agent and per-model tables."""

    def __init__(self, summary: UsageSummary):
        self.summary = summary

    def __rich__(self) -> RenderableType:
        summary = self.summary
        if summary.total_operations == 0:
            return Text("No AI usage recorded", style="dim")

        totals = Text()
        totals.append("Operations: ", style="bold")
        totals.append(f"{summary.successful_operations}/{summary.total_operations} succeeded   ")
        totals.append("Tokens: ", style="bold")
        totals.append(
            f"{format_tokens(summary.total_input_tokens)} in / "
            f"{format_tokens(summary.total_output_tokens)} out   "
        )
        totals.append("Cost: ", style="bold")
        totals.append(f"${summary.total_cost:.4f}   ", style="green")
        totals.append("Time: ", style="bold")
        totals.append(f"{summary.total_duration:.1f}s")

        agents = Table(title="By Agent", box=SIMPLE, title_justify="left")
        agents.add_column("Agent", style="cyan")
        agents.add_column("Model")
        agents.add_column("Tokens", justify="right")
        agents.add_column("Cost", justify="right", style="green")
        agents.add_column("Time", justify="right")
        agents.add_column("OK", justify="right")
        for bucket in summary.by_agent.values():
            agents.add_row(
                bucket.name,
                model_short_name(bucket.model),
                f"{format_tokens(bucket.input_tokens)}/{format_tokens(bucket.output_tokens)}",
                f"${bucket.cost:.4f}",
                f"{bucket.duration:.1f}s",
                f"{bucket.successful}/{bucket.operations}",
            )

        models = Table(title="By Model", box=SIMPLE, title_justify="left")
        models.add_column("Model", style="cyan")
        models.add_column("Tokens", justify="right")
        models.add_column("Cost", justify="right", style="green")
        models.add_column("Calls", justify="right")
        for bucket in summary.by_model.values():
            models.add_row(
                bucket.name,
                f"{format_tokens(bucket.input_tokens)}/{format_tokens(bucket.output_tokens)}",
                f"${bucket.cost:.4f}",
                str(bucket.operations),
            )

        return Panel(
            Group(totals, agents, models),
            title="[bold]AI Usage[/bold]",
            border_style="blue",
            box=ROUNDED,
        )


class ReconPlanDisplay:
    """Phases, tools and permission needs of a reconnaissance plan."""

    def __init__(self, plan: ReconPlan):
        self.plan = plan

    def __rich__(self) -> Panel:
        plan = self.plan
        parts: list[RenderableType] = []

        if plan.reasoning:
            parts.append(Text("Strategy", style="bold"))
            parts.append(Text(plan.reasoning))
            parts.append(Text())

        parts.append(Text(f"Phases ({len(plan.phases)})", style="bold"))
        for i, phase in enumerate(plan.phases, 1):
            header = Text(f"{i}. {phase.name}", style="cyan")
            if phase.priority:
                header.append(f"  [{phase.priority}]", style=PRIORITY_STYLES.get(phase.priority.lower(), "white"))
            parts.append(header)
            if phase.description:
                parts.append(Text(f"   {phase.description}", style="dim"))
            for tool in phase.tools:
                line = Text(f"   - {tool.name}")
                if tool.requires_root:
                    line.append(" [ROOT REQUIRED]", style="bold red")
                if tool.purpose:
                    line.append(f" {tool.purpose}", style="dim")
                parts.append(line)

        parts.append(Text())
        if plan.requires_root or plan.root_tools:
            parts.append(Text("Root/sudo access required for some steps; approval is asked per command.", style="yellow"))
        else:
            parts.append(Text("No elevated permissions needed", style="green"))

        return Panel(
            Group(*parts),
            title=f"[bold]Reconnaissance Plan[/bold] [dim]{rich_escape(plan.target)}[/dim]",
            border_style="cyan",
            box=ROUNDED,
        )


def agents_table(agents: list[AgentConfig]) -> Table:
    """Table of the agent catalogue."""
    table = Table(title="Analysis Agents")
    table.add_column("Agent", style="cyan")
    table.add_column("Type")
    table.add_column("Model")
    table.add_column("Thinking")
    table.add_column("Use Case", style="dim")

    for agent in agents:
        table.add_row(
            agent.name,
            agent.type.value,
            model_short_name(agent.model),
            agent.thinking.value,
            agent.use_case,
        )
    return table
