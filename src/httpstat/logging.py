"""Logging configuration for httpstat.

Library modules log through ``logging.getLogger(__name__)`` and stay silent
unless the application configures handlers. ``configure_logging`` is a
convenience for watching hook events live while debugging a transport.
"""

import logging
import sys
from enum import IntEnum
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "httpstat"


class LogLevel(IntEnum):
    """Log level enumeration."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO = sys.stderr,
    debug: bool = False,
) -> logging.Logger:
    """Attach a Rich handler to the httpstat logger.

    Args:
        verbosity: 0 logs INFO and above, 1+ logs every hook event (DEBUG)
        quiet: Only log warnings (takes precedence over debug/verbosity)
        no_color: Disable colored output
        stream: Output stream for logs
        debug: Same as verbosity >= 1, and also shows time and source path

    Returns:
        The configured httpstat logger

    Note:
        Flag precedence: quiet > debug > verbosity. Calling again replaces
        the handler installed by the previous call.
    """
    if quiet:
        level = LogLevel.QUIET
    elif debug or verbosity >= 1:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL

    console = Console(
        file=stream,
        force_terminal=not no_color,
        no_color=no_color,
    )
    handler = RichHandler(
        console=console,
        show_time=debug,
        show_path=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
