"""Logging setup: a Rich handler on stderr for the ``pr_helper`` logger."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: str = "WARNING",
    *,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``pr_helper`` logger.

    Safe to call repeatedly; existing handlers are replaced.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO").
        console: Optional Rich console for the handler. Defaults to stderr.

    Returns:
        The configured ``pr_helper`` logger.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger("pr_helper")
    logger.setLevel(numeric)
    logger.handlers.clear()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
    )
    handler.setLevel(numeric)
    logger.addHandler(handler)
    return logger
