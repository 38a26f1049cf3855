"""
Shadow scanner package.

Scan module orchestration and privileged command negotiation.
"""

from shadow.scanner.orchestrator import ScanModule, ScanOrchestrator, modules_for_profile
from shadow.scanner.permissions import (
    ApprovalDecision,
    ApprovalDeniedError,
    PermissionNegotiator,
    PrivilegedCommandError,
    PrivilegeError,
    PrivilegeUnavailableError,
    capability_hint,
    suggest_sudoers_entry,
)

__all__ = [
    "ScanModule",
    "ScanOrchestrator",
    "modules_for_profile",
    "ApprovalDecision",
    "PermissionNegotiator",
    "PrivilegeError",
    "PrivilegeUnavailableError",
    "ApprovalDeniedError",
    "PrivilegedCommandError",
    "capability_hint",
    "suggest_sudoers_entry",
]
