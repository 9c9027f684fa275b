"""Logging configuration for findterm.

Everything logs under the "findterm" logger; components use child loggers
(findterm.session, findterm.channel, ...). Output goes to:
- the file named by `logging.file` in the config or FINDTERM_LOG
- otherwise stderr, but only when stderr is a console (the search UI owns
  the terminal, so a piped stderr stays quiet)

Verbosity from the command line maps to levels:
error(0), warning(1), info(2), verbose(3), trace(4).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from findterm.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("findterm")

FORMAT = "%(asctime)s %(levelname)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

_initialized = False

_NAMED_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None = None, verbose: int | None = None) -> int:
    """Pick the log level. Command-line verbosity wins over the config."""
    if verbose is not None:
        return _VERBOSITY_LEVELS[max(0, min(verbose, len(_VERBOSITY_LEVELS) - 1))]
    if config is not None and config.level:
        return _NAMED_LEVELS.get(config.level.upper(), logging.INFO)
    return logging.INFO


def _attach(handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(_LowercaseLevelFormatter(FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logging(config: LoggingConfig | None = None, verbose: int | None = None) -> None:
    """Initialize logging once at startup; later calls do nothing.

    Args:
        config: Logging section of the loaded Config.
        verbose: Verbosity from the command line (0-4).
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config, verbose)
    logger.setLevel(level)

    log_path = (config.file if config else None) or os.environ.get("FINDTERM_LOG")
    if log_path:
        try:
            _attach(
                logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8"),
                level,
            )
            return
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[findterm] Failed to open log file: {e}", file=sys.stderr)

    if sys.stderr.isatty():
        _attach(logging.StreamHandler(sys.stderr), level)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get the findterm logger, or one of its children (e.g. "session")."""
    if name:
        return logger.getChild(name)
    return logger
