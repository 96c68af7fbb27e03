"""Logging setup driven by the CLI verbosity level."""

import logging
from enum import Enum

from rich.console import Console
from rich.logging import RichHandler


class VerbosityLevel(Enum):
    """Output verbosity levels, from least to most output."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"
    DEBUG = "debug"

    def __ge__(self, other):
        if not isinstance(other, VerbosityLevel):
            return NotImplemented
        levels = list(VerbosityLevel)
        return levels.index(self) >= levels.index(other)

    @property
    def log_level(self) -> int:
        return {
            VerbosityLevel.QUIET: logging.ERROR,
            VerbosityLevel.NORMAL: logging.WARNING,
            VerbosityLevel.VERBOSE: logging.INFO,
            VerbosityLevel.DEBUG: logging.DEBUG,
        }[self]


def setup_logger(
    name: str = "site_icon_tool",
    level: VerbosityLevel = VerbosityLevel.NORMAL,
) -> logging.Logger:
    """
    Route the package's log records to stderr through rich.

    Debug verbosity adds timestamps, thread names (refresh workers log too)
    and source locations.

    Args:
        name: Logger name
        level: Verbosity level

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(level.log_level)

    debug = level == VerbosityLevel.DEBUG
    # stderr keeps JSON output on stdout clean; markup off since URLs contain brackets
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=debug,
        show_path=debug,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level.log_level)
    handler.setFormatter(
        logging.Formatter("%(threadName)s %(message)s" if debug else "%(message)s")
    )
    logger.addHandler(handler)

    return logger
