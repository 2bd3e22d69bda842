"""Logging setup for the ver command line."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(log_level: str = "WARNING") -> None:
    """Send ``ver.*`` log records to stderr through a rich handler.

    Safe to call more than once; earlier handlers are replaced.
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger("ver")
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setLevel(level)
    root_logger.addHandler(handler)
    root_logger.propagate = False
