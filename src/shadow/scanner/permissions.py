"""
Privileged command negotiation for Shadow.

Before a reconnaissance step runs under sudo, the operator is shown the
tool, purpose and exact command and asked to approve it. Answers are
remembered per (tool, command) for the lifetime of the negotiator;
"always" additionally approves every future command for the same tool.

Usage:
    negotiator = PermissionNegotiator()
    output = negotiator.run_privileged("nmap", "SYN scan", "-sS", "example.com")
"""

from __future__ import annotations

import getpass
import shutil
import subprocess
import threading
from collections.abc import Callable, Sequence
from enum import Enum

import structlog
from rich.console import Console
from rich.markup import escape as rich_escape
from rich.panel import Panel

logger = structlog.get_logger(__name__)

InputFunc = Callable[[str], str]
PrivilegeProbe = Callable[[], bool]
CommandRunner = Callable[[Sequence[str], float], subprocess.CompletedProcess[str]]

DEFAULT_COMMAND_TIMEOUT = 600.0
PROBE_TIMEOUT = 10.0

CAPABILITY_HINTS: dict[str, str] = {
    "nmap": "sudo setcap cap_net_raw,cap_net_admin,cap_net_bind_service+eip /usr/bin/nmap",
}


class ApprovalDecision(str, Enum):
    """Recorded answer for a (tool, command) key."""

    APPROVED = "approved"
    DENIED = "denied"
    APPROVED_ALWAYS = "always"

    @property
    def approved(self) -> bool:
        return self is not ApprovalDecision.DENIED


class PrivilegeError(Exception):
    """Base exception for privileged execution errors."""

    pass


class PrivilegeUnavailableError(PrivilegeError):
    """Raised when the privilege backend (sudo) cannot be used non-interactively."""

    pass


class ApprovalDeniedError(PrivilegeError):
    """Raised when the operator denied a command."""

    pass


class PrivilegedCommandError(PrivilegeError):
    """Raised when an approved or fallback command fails to run or exits non-zero."""

    def __init__(self, message: str, output: str = "", returncode: int | None = None) -> None:
        super().__init__(message)
        self.output = output
        self.returncode = returncode


def run_command(argv: Sequence[str], timeout: float) -> subprocess.CompletedProcess[str]:
    """Run a command, capturing stdout and stderr as text."""
    return subprocess.run(
        list(argv),
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


def probe_privilege_backend(backend: str = "sudo") -> bool:
    """True when ``backend -n true`` succeeds, i.e. no password prompt is needed."""
    if shutil.which(backend) is None:
        return False

    try:
        completed = run_command([backend, "-n", "true"], PROBE_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("privilege_probe_failed", backend=backend, error=str(e))
        return False

    return completed.returncode == 0


def _approval_key(tool: str, command: str) -> str:
    return f"{tool}:{command}"


def _wildcard_key(tool: str) -> str:
    return f"{tool}:*"


class PermissionNegotiator:
    """
    Approval cache plus interactive confirmation for privileged commands.

    All public methods are serialised by an internal lock, so concurrent
    callers queue behind an open prompt instead of prompting twice.

    Args:
        console: Rich console used for the approval panel.
        input_func: Reads one answer line; defaults to ``console.input``.
        probe: Reports whether the privilege backend is usable; called
            lazily once and cached.
        runner: Executes an argv with a timeout.
        backend: Privilege escalation binary.
        command_timeout: Timeout for executed commands, in seconds.
    """

    def __init__(
        self,
        console: Console | None = None,
        input_func: InputFunc | None = None,
        probe: PrivilegeProbe | None = None,
        runner: CommandRunner | None = None,
        backend: str = "sudo",
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self.console = console or Console()
        self._input = input_func or self.console.input
        self._probe = probe or (lambda: probe_privilege_backend(backend))
        self._runner = runner or run_command
        self.backend = backend
        self.command_timeout = command_timeout

        self._decisions: dict[str, ApprovalDecision] = {}
        self._privilege_available: bool | None = None
        self._lock = threading.RLock()

    def privilege_available(self) -> bool:
        """Probe the backend once and cache the answer."""
        with self._lock:
            if self._privilege_available is None:
                self._privilege_available = bool(self._probe())
                logger.debug(
                    "privilege_backend_probed",
                    backend=self.backend,
                    available=self._privilege_available,
                )
            return self._privilege_available

    def cached_decision(self, tool: str, command: str) -> ApprovalDecision | None:
        """Recorded decision for the exact command or, failing that, the tool wildcard."""
        with self._lock:
            decision = self._decisions.get(_approval_key(tool, command))
            if decision is not None:
                return decision
            return self._decisions.get(_wildcard_key(tool))

    def request_approval(self, tool: str, purpose: str, command: str) -> ApprovalDecision:
        """
        Ask the operator to approve a privileged command.

        Returns:
            The recorded or newly given decision.

        Raises:
            PrivilegeUnavailableError: The backend is unusable; nothing is asked.
        """
        with self._lock:
            cached = self.cached_decision(tool, command)
            if cached is not None:
                return cached

            if not self.privilege_available():
                logger.warning("privilege_unavailable", backend=self.backend, tool=tool)
                raise PrivilegeUnavailableError(
                    f"{self.backend} is not available or requires a password; "
                    f"cannot run {tool} with elevated privileges"
                )

            self.console.print(
                Panel(
                    f"[bold]Tool:[/bold] {rich_escape(tool)}\n"
                    f"[bold]Purpose:[/bold] {rich_escape(purpose)}\n"
                    f"[bold]Command:[/bold] {rich_escape(command)}\n\n"
                    "[yellow]This command requires elevated privileges. "
                    "Only the command shown above will be run.[/yellow]",
                    title="Root Permission Request",
                    border_style="yellow",
                )
            )
            answer = self._input("Allow this command? (yes/no/always): ").strip().lower()

            decision = self._record_answer(tool, command, answer)
            logger.info("privilege_decision", tool=tool, command=command, decision=decision.value)
            return decision

    def _record_answer(self, tool: str, command: str, answer: str) -> ApprovalDecision:
        key = _approval_key(tool, command)

        if answer in ("yes", "y"):
            decision = ApprovalDecision.APPROVED
        elif answer in ("always", "a"):
            decision = ApprovalDecision.APPROVED_ALWAYS
            self._decisions[_wildcard_key(tool)] = decision
        elif answer in ("no", "n"):
            decision = ApprovalDecision.DENIED
        else:
            self.console.print("[yellow]Invalid response, treating as 'no'[/yellow]")
            logger.warning("privilege_invalid_answer", tool=tool, answer=answer[:40])
            decision = ApprovalDecision.DENIED

        self._decisions[key] = decision
        return decision

    def format_command(self, tool: str, args: Sequence[str]) -> str:
        return " ".join([self.backend, tool, *args])

    def _execute(self, argv: Sequence[str], description: str) -> str:
        try:
            completed = self._runner(argv, self.command_timeout)
        except subprocess.TimeoutExpired as e:
            raise PrivilegedCommandError(
                f"{description} timed out after {self.command_timeout:.0f}s"
            ) from e
        except OSError as e:
            raise PrivilegedCommandError(f"{description} could not be started: {e}") from e

        output = (completed.stdout or "") + (completed.stderr or "")
        if completed.returncode != 0:
            raise PrivilegedCommandError(
                f"{description} failed with exit code {completed.returncode}",
                output=output,
                returncode=completed.returncode,
            )
        return output

    def run_privileged(self, tool: str, purpose: str, *args: str) -> str:
        """
        Run ``backend tool args...`` after approval.

        Raises:
            PrivilegeUnavailableError: The backend is unusable.
            ApprovalDeniedError: The operator denied the command.
            PrivilegedCommandError: The command failed.
        """
        command = self.format_command(tool, args)
        decision = self.request_approval(tool, purpose, command)
        if not decision.approved:
            raise ApprovalDeniedError(f"user denied permission for: {command}")

        logger.info("privileged_command_started", tool=tool, command=command)
        return self._execute([self.backend, tool, *args], f"'{command}'")

    def run_with_fallback(
        self,
        tool: str,
        purpose: str,
        root_args: Sequence[str],
        fallback_args: Sequence[str],
    ) -> tuple[str, bool]:
        """
        Prefer the privileged invocation, fall back to the unprivileged one.

        Returns:
            Tuple of (output, ran_privileged).

        Raises:
            PrivilegedCommandError: The fallback invocation failed.
        """
        if self.privilege_available():
            command = self.format_command(tool, root_args)
            try:
                decision = self.request_approval(tool, purpose, command)
                if decision.approved:
                    return self._execute([self.backend, tool, *root_args], f"'{command}'"), True
            except PrivilegeError as e:
                logger.warning("privileged_run_failed", tool=tool, error=str(e)[:200])
                self.console.print(f"[yellow]Privileged run failed: {rich_escape(str(e))}. Falling back.[/yellow]")

        fallback = " ".join([tool, *fallback_args])
        logger.info("fallback_command_started", tool=tool, command=fallback)
        return self._execute([tool, *fallback_args], f"fallback '{fallback}'"), False

    def approval_summary(self) -> dict[str, int]:
        """Counts of approved and denied keys, wildcard keys included."""
        with self._lock:
            approved = sum(1 for d in self._decisions.values() if d.approved)
            return {"approved": approved, "denied": len(self._decisions) - approved}


def suggest_sudoers_entry(tool: str, user: str | None = None) -> str:
    """Sudoers lines that let ``user`` run ``tool`` without a password."""
    try:
        user = user or getpass.getuser()
    except (KeyError, OSError):
        user = "yourusername"
    path = shutil.which(tool) or f"/usr/bin/{tool}"
    target = f"/etc/sudoers.d/shadow-{tool}"
    return (
        f"echo '{user} ALL=(ALL) NOPASSWD: {path}' | sudo tee {target}\n"
        f"sudo chmod 440 {target}"
    )


def capability_hint(tool: str) -> str:
    """How to grant Linux capabilities instead of sudo, where known."""
    hint = CAPABILITY_HINTS.get(tool)
    if hint is None:
        return f"Check whether {tool} supports Linux capabilities (see 'man capabilities')."
    return hint
