"""Logging setup for lapwatch."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOGGER = "lapwatch"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logger(
    name: str = DEFAULT_LOGGER,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    stream: bool = True,
) -> logging.Logger:
    """
    Configure and return a logger.

    Args:
        name: Logger name. Module loggers (``core.timing.engine`` etc.) are
            configured by passing the package root, or ``""`` for the root.
        level: Logging level, either numeric or a name such as ``"DEBUG"``.
        log_file: Optional path to a log file.
        stream: Attach a stderr handler.

    Returns:
        Configured logger.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    log.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if stream:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(fmt)
        log.addHandler(h)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        log.addHandler(fh)

    return log


def get_logger(name: str = DEFAULT_LOGGER) -> logging.Logger:
    """Return a logger. Use after setup_logger has been called."""
    return logging.getLogger(name)
