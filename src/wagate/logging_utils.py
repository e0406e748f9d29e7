"""Runtime logging helpers."""

from __future__ import annotations

import sys
from logging import Handler
from typing import Literal

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

LogProfile = Literal["default", "console"]

_DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {name}:{line} | {message}"
_CONFIGURED: tuple[LogProfile, str] | None = None


def _build_console_handler(level: str) -> Handler:
    # stdout stays free for command output such as `wagate normalize`.
    return RichHandler(
        console=Console(stderr=True),
        level=level,
        show_time=True,
        log_time_format="[%H:%M:%S]",
        show_level=True,
        show_path=level == "DEBUG",
        markup=False,
        rich_tracebacks=True,
    )


def configure_logging(*, profile: LogProfile = "default", level: str = "INFO") -> None:
    """Route loguru output for the gateway process.

    `default` writes plain lines to stderr for log collectors, `console`
    renders through rich for an operator watching the terminal (QR payloads,
    session transitions). Calling again with the same arguments is a no-op.
    """

    global _CONFIGURED
    level = level.upper()
    if _CONFIGURED == (profile, level):
        return

    logger.remove()
    if profile == "console":
        logger.add(_build_console_handler(level), level=level, format="{message}", backtrace=False, diagnose=False)
    else:
        logger.add(sys.stderr, level=level, format=_DEFAULT_FORMAT, backtrace=False, diagnose=False)
    _CONFIGURED = (profile, level)
