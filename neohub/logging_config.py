"""Logging configuration for the neohub CLI.

The level comes from --verbose/--debug, and NEOHUB_LOG overrides both so the
CLI and the hub can be turned up together from one environment variable.
Output is colored when stderr is a terminal.
"""

import logging
import os
import sys
from typing import Mapping, Optional

from .constants import ENV_LOG_LEVEL


DEFAULT_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def env_log_level(environ: Optional[Mapping[str, str]] = None) -> Optional[int]:
    """Level named by NEOHUB_LOG, or None when unset or not a level name."""
    environ = os.environ if environ is None else environ
    level_name = environ.get(ENV_LOG_LEVEL, "").strip().upper()
    level = logging.getLevelName(level_name) if level_name else None
    return level if isinstance(level, int) else None


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> logging.Logger:
    """Configure the ``neohub`` logger for CLI use.

    Args:
        verbose: INFO level with timestamps
        debug: DEBUG level with line numbers
        environ: Environment to read NEOHUB_LOG from (default: os.environ)

    Returns:
        Configured package logger
    """
    if debug:
        level, log_format = logging.DEBUG, DEBUG_FORMAT
    elif verbose:
        level, log_format = logging.INFO, VERBOSE_FORMAT
    else:
        level, log_format = logging.WARNING, DEFAULT_FORMAT

    override = env_log_level(environ)
    if override is not None:
        level = override
        if log_format == DEFAULT_FORMAT and level < logging.WARNING:
            log_format = VERBOSE_FORMAT

    logger = logging.getLogger('neohub')
    logger.handlers.clear()
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter_cls = ColoredFormatter if sys.stderr.isatty() else logging.Formatter
    handler.setFormatter(formatter_cls(log_format))
    logger.addHandler(handler)

    return logger
