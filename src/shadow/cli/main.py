"""
CLI interface for Shadow.

Commands:
- scan: run the scan catalogue and optionally analyze findings with AI
- query: ask a free-form question about a target
- plan: ask the planner for a reconnaissance plan and approve privileged steps
- agents / config / auth-status: inspection helpers
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape as rich_escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from shadow import __version__
from shadow.ai.agents import AgentManager
from shadow.ai.client import AnalysisClient
from shadow.ai.errors import AnalysisError, RetriesExhaustedError
from shadow.ai.planner import PLANNER_SYSTEM_PROMPT, ReconPlanner
from shadow.ai.prompts import build_system_prompt
from shadow.ai.retry import RetryPolicy
from shadow.ai.session import SessionOptions, describe_authentication, session_factory_from_settings
from shadow.ai.usage import UsageTracker, model_short_name
from shadow.cli.display import (
    AnalysisPanel,
    FindingsSummary,
    ReconPlanDisplay,
    UsageSummaryDisplay,
    agents_table,
)
from shadow.cli.logging_config import configure_cli_logging
from shadow.config.settings import ShadowSettings, get_settings
from shadow.models.agent import get_default_agents
from shadow.models.analysis import AnalysisRequest, Profile
from shadow.scanner.orchestrator import ScanOrchestrator
from shadow.scanner.permissions import (
    PermissionNegotiator,
    PrivilegeUnavailableError,
    capability_hint,
    suggest_sudoers_entry,
)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="shadow",
    help="Shadow - AI-augmented security reconnaissance",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

PROFILE_NAMES = [p.value for p in Profile]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Shadow[/bold blue] version {__version__}")
        raise typer.Exit()


def _resolve_profile(name: str) -> Profile:
    profile = Profile.from_name(name)
    if name.strip().lower() not in PROFILE_NAMES:
        console.print(f"[yellow]Unknown profile '{rich_escape(name)}', using standard[/yellow]")
    return profile


def _progress(message: str) -> None:
    console.print(f"[dim]{rich_escape(message)}[/dim]")


def _print_analysis_error(error: Exception) -> None:
    """Report a failure, telling apart "gave up after retries" and "failed outright"."""
    if isinstance(error, RetriesExhaustedError):
        console.print(f"[bold red]AI analysis gave up after retries:[/bold red] {rich_escape(str(error))}")
    else:
        console.print(f"[bold red]AI analysis failed:[/bold red] {rich_escape(str(error))}")

    if isinstance(error, AnalysisError):
        console.print(f"[dim]{rich_escape(error.remediation)}[/dim]")


def _single_client(
    settings: ShadowSettings,
    tracker: UsageTracker,
    agent_name: str,
    system_prompt: str,
) -> AnalysisClient:
    options = SessionOptions(
        model=settings.model.default_model,
        system_prompt=system_prompt,
        max_tokens=settings.model.max_tokens,
        thinking_budget=settings.model.thinking_budget,
        request_timeout=settings.model.request_timeout,
    )
    session = session_factory_from_settings(settings)(options)
    return AnalysisClient(
        session,
        agent_name=agent_name,
        model=settings.model.default_model,
        tracker=tracker,
        retry_policy=RetryPolicy.from_config(settings.retry),
        analysis_timeout=settings.retry.analysis_timeout_seconds,
        query_timeout=settings.retry.query_timeout_seconds,
    )


@app.command()
def scan(
    target: Annotated[
        str,
        typer.Argument(help="Target URL, domain or IP address"),
    ],
    profile: Annotated[
        str,
        typer.Option(
            "--profile", "-p",
            help="Scan profile: quick, standard or deep",
        ),
    ] = "standard",
    ai_analysis: Annotated[
        bool,
        typer.Option(
            "--ai-analysis", "-a",
            help="Analyze findings with Claude",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes", "-y",
            help="Skip the authorization confirmation",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose", "-v",
            help="Verbose output",
        ),
    ] = False,
) -> None:
    """
    Scan a target and optionally analyze the findings.

    Examples:

        # Standard scan
        shadow scan example.com

        # Deep scan with multi-agent AI analysis
        shadow scan example.com --profile deep --ai-analysis
    """
    settings = get_settings()
    configure_cli_logging(verbose, settings.output.log_level)
    resolved = _resolve_profile(profile)

    if not yes:
        authorized = Confirm.ask(
            f"Do you have authorization to test [bold]{rich_escape(target)}[/bold]?",
            console=console,
            default=False,
        )
        if not authorized:
            console.print("[yellow]Scan cancelled. Only test systems you are authorized to test.[/yellow]")
            raise typer.Exit(1)

    console.print(f"\n[bold]Target:[/bold] {rich_escape(target)}")
    console.print(f"[bold]Profile:[/bold] {resolved.value}\n")

    orchestrator = ScanOrchestrator(resolved, progress=_progress)
    with console.status("[bold green]Running scan modules..."):
        scan_result = asyncio.run(orchestrator.run(target))

    console.print(FindingsSummary(scan_result))

    if not ai_analysis:
        return

    tracker = UsageTracker()
    request = AnalysisRequest(target=target, findings=tuple(scan_result.findings), profile=resolved)

    async def _analyze():
        manager = AgentManager.create(
            session_factory_from_settings(settings),
            settings=settings,
            tracker=tracker,
        )
        async with manager:
            return await manager.analyze(request, progress=_progress)

    try:
        with console.status("[bold green]Running AI analysis..."):
            analysis = asyncio.run(_analyze())
    except KeyboardInterrupt:
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        console.print(UsageSummaryDisplay(tracker.summary()))
        raise typer.Exit(130)
    except AnalysisError as e:
        _print_analysis_error(e)
        console.print(UsageSummaryDisplay(tracker.summary()))
        raise typer.Exit(1)
    except Exception as e:
        _print_analysis_error(e)
        if verbose:
            console.print_exception()
        console.print(UsageSummaryDisplay(tracker.summary()))
        raise typer.Exit(1)

    console.print(AnalysisPanel(analysis, settings.output.max_recommendations_shown))
    console.print(UsageSummaryDisplay(tracker.summary()))


@app.command()
def query(
    target: Annotated[
        str,
        typer.Argument(help="Target the question is about"),
    ],
    question: Annotated[
        str,
        typer.Argument(help="Question to ask"),
    ],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output"),
    ] = False,
) -> None:
    """Ask Claude a free-form security question about a target."""
    settings = get_settings()
    configure_cli_logging(verbose, settings.output.log_level)
    tracker = UsageTracker()

    async def _ask() -> str:
        client = _single_client(settings, tracker, "Security Analyst", build_system_prompt())
        try:
            return await client.query(target, question, progress=_progress)
        finally:
            await client.close()

    try:
        with console.status(f"[bold green]Asking {model_short_name(settings.model.default_model)}..."):
            answer = asyncio.run(_ask())
    except AnalysisError as e:
        _print_analysis_error(e)
        raise typer.Exit(1)
    except Exception as e:
        _print_analysis_error(e)
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    console.print(Panel(Markdown(answer), title="[bold cyan]Answer[/bold cyan]", border_style="cyan"))
    console.print(UsageSummaryDisplay(tracker.summary()))


@app.command()
def plan(
    target: Annotated[
        str,
        typer.Argument(help="Target URL, domain or IP address"),
    ],
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Planning mode: quick, standard or deep"),
    ] = "standard",
    skip_approvals: Annotated[
        bool,
        typer.Option("--skip-approvals", help="Only show the plan; do not ask for root approvals"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output"),
    ] = False,
) -> None:
    """
    Ask Claude for a reconnaissance plan.

    Tools flagged as needing root are passed through the permission
    prompt so approvals are settled before any scanning starts.
    """
    settings = get_settings()
    configure_cli_logging(verbose, settings.output.log_level)
    resolved = _resolve_profile(profile)
    tracker = UsageTracker()

    async def _plan():
        client = _single_client(settings, tracker, "Recon Planner", PLANNER_SYSTEM_PROMPT)
        planner = ReconPlanner(client, timeout=settings.retry.query_timeout_seconds)
        try:
            return await planner.plan(target, resolved, progress=_progress)
        finally:
            await planner.close()

    try:
        with console.status("[bold green]Planning reconnaissance..."):
            recon_plan = asyncio.run(_plan())
    except AnalysisError as e:
        _print_analysis_error(e)
        raise typer.Exit(1)
    except Exception as e:
        _print_analysis_error(e)
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    console.print(ReconPlanDisplay(recon_plan))

    if skip_approvals or not recon_plan.root_tools:
        return

    negotiator = PermissionNegotiator(
        console=console,
        backend=settings.permissions.privilege_backend,
        command_timeout=settings.permissions.command_timeout_seconds,
    )

    for tool in recon_plan.root_tools:
        command = negotiator.format_command(tool.name, [target])
        try:
            decision = negotiator.request_approval(tool.name, tool.purpose or "reconnaissance", command)
        except PrivilegeUnavailableError as e:
            console.print(f"[yellow]{rich_escape(str(e))}[/yellow]")
            console.print("[bold]To allow it without a password prompt:[/bold]")
            console.print(rich_escape(suggest_sudoers_entry(tool.name)))
            console.print("[bold]Or use Linux capabilities:[/bold]")
            console.print(rich_escape(capability_hint(tool.name)))
            break

        style = "green" if decision.approved else "red"
        console.print(f"[{style}]{tool.name}: {decision.value}[/{style}]")

    counts = negotiator.approval_summary()
    if counts["approved"] or counts["denied"]:
        console.print(f"\n[bold]Permissions:[/bold] {counts['approved']} approved, {counts['denied']} denied")


@app.command()
def agents() -> None:
    """List the analysis agents and their models."""
    console.print(agents_table(get_default_agents()))
    console.print("\n[dim]quick -> Quick Scanner, standard -> Vulnerability Researcher, "
                  "deep -> Recon -> Vulnerability -> Exploitation[/dim]")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()
    available, auth_message = describe_authentication(settings)

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Authentication", f"[green]{auth_message}[/green]" if available else f"[red]{auth_message}[/red]")
    table.add_row("Default Model", settings.model.default_model)
    table.add_row("Max Tokens", str(settings.model.max_tokens))
    table.add_row("Thinking Budget", str(settings.model.thinking_budget))
    table.add_row("Max Attempts", str(settings.retry.max_attempts))
    table.add_row("Retry Base Delay", f"{settings.retry.base_delay_seconds:.0f}s")
    table.add_row("Analysis Timeout", f"{settings.retry.analysis_timeout_seconds:.0f}s")
    table.add_row("Query Timeout", f"{settings.retry.query_timeout_seconds:.0f}s")
    table.add_row("Privilege Backend", settings.permissions.privilege_backend)
    table.add_row("Log Level", settings.output.log_level)

    console.print(table)


@app.command(name="auth-status")
def auth_status() -> None:
    """Show whether Anthropic credentials are configured."""
    available, message = describe_authentication(get_settings())
    if available:
        console.print(f"[green]Authenticated:[/green] {message}")
        return

    console.print(f"[bold red]Not authenticated:[/bold red] {message}")
    raise typer.Exit(1)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version", "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version",
        ),
    ] = None,
) -> None:
    """
    Shadow - AI-augmented security reconnaissance

    Only scan systems you are authorized to test.
    """


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
