"""
Logging configuration for the Shadow CLI.

By default only warnings and errors are shown, as single "[LEVEL] event"
lines on stderr so they never mix with rendered results. Verbose mode
shows everything through structlog's console renderer.
"""

from __future__ import annotations

import logging
import sys

import structlog

NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "asyncio")


def configure_cli_logging(verbose: bool = False, level: str = "WARNING") -> None:
    """
    Configure stdlib logging and structlog for one CLI invocation.

    Args:
        verbose: Show debug output with the full console renderer.
        level: Threshold for the quiet renderer (SHADOW_OUTPUT__LOG_LEVEL).
    """
    log_level = logging.DEBUG if verbose else logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.WARNING

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("shadow").setLevel(log_level)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.ERROR)

    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
    ]
    if verbose:
        processors += [
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors.append(_short_renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def _short_renderer(logger: logging.Logger, method_name: str, event_dict: dict) -> str:
    """One line per event; retry position and the error are appended when present."""
    level = str(event_dict.get("level", method_name)).upper()
    line = f"[{level}] {event_dict.get('event', '')}"
    if "attempt" in event_dict:
        line += f" (attempt {event_dict['attempt']}"
        if "max_attempts" in event_dict:
            line += f"/{event_dict['max_attempts']}"
        if "delay" in event_dict:
            line += f", retrying in {float(event_dict['delay']):.0f}s"
        line += ")"
    if "error" in event_dict:
        line += f": {event_dict['error']}"
    return line
