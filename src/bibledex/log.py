"""Logging setup for the command-line entry points."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from bibledex.exceptions import ConfigError


def configure_logging(level: str = "INFO", *, console: Optional[Console] = None) -> None:
    """Route stdlib logging through rich on stderr."""
    if not isinstance(logging.getLevelName(level.upper()), int):
        raise ConfigError(f"Unknown log level: {level!r}")
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # Every flush tick is otherwise logged at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
