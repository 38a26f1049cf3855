"""
Shadow CLI Package.

This module exports the CLI entry points.
"""

from shadow.cli.main import app, cli

__all__ = [
    "app",
    "cli",
]
