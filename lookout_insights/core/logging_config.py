"""Logging setup for the lookout CLI."""

from __future__ import annotations

import logging

from rich.console import Console as RichConsole
from rich.logging import RichHandler

PACKAGE_LOGGER = "lookout_insights"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Route package logs through a rich handler on stderr.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging

    Returns:
        The package logger
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logger = logging.getLogger(PACKAGE_LOGGER)
    # Repeated CLI invocations in one process must not stack handlers
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=RichConsole(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        show_time=True,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


__all__ = ["setup_logging"]
