"""Logging configuration for the CLI.

Sets up the ``"shipwright"`` logger with a Rich console handler on stderr.
Idempotent: repeated calls replace the handler rather than stacking another.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LOG_FORMAT = "%(name)s: %(message)s"


def configure_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Route ``shipwright.*`` log records through a RichHandler.

    Returns the configured package logger.
    """
    package_logger = logging.getLogger("shipwright")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for existing in list(package_logger.handlers):
        if isinstance(existing, RichHandler):
            package_logger.removeHandler(existing)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    package_logger.addHandler(handler)
    return package_logger
