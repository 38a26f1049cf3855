"""
Shadow: AI-augmented security reconnaissance analysis.

Runs a small catalogue of scan modules against an authorized target and
hands the findings to Claude for narrative analysis, with bounded
retries, usage accounting and operator approval for privileged steps.
"""

from importlib.metadata import version

__version__ = version("shadow-recon")
__all__ = ["__version__"]
