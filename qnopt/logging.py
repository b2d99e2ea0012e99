"""Logging helpers for qnopt.

Every module obtains its logger through :func:`get_logger` so that solver
diagnostics share one namespace and one output format.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

# Solvers stay quiet unless asked otherwise
_DEFAULT_LEVEL = logging.WARNING

_loggers: dict[str, logging.Logger] = {}


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create the logger for a qnopt module.

    Args:
        name: Logger name, typically ``__name__``. Names outside the
            ``qnopt`` namespace are nested under it.

    Returns:
        Cached logger writing ``[LEVEL] name: message`` lines to stderr.

    Example:
        >>> from qnopt.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("skipping SR1 update")
    """
    if name is None:
        name = "qnopt"
    logger_name = name if name == "qnopt" or name.startswith("qnopt.") else f"qnopt.{name}"

    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(_DEFAULT_LEVEL)
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_DEFAULT_LEVEL)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the level of every qnopt logger, existing and future.

    Args:
        level: ``logging`` constant or its name (``"DEBUG"``, ``"INFO"``, ...).
    """
    global _DEFAULT_LEVEL
    level = _resolve_level(level)
    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
    _DEFAULT_LEVEL = level


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Replace the handlers of all qnopt loggers.

    Args:
        level: Logging level (default: WARNING).
        format_string: Custom format string. If None, uses the default format.
        stream: Output stream (default: sys.stderr).
    """
    global _DEFAULT_LEVEL
    level = _resolve_level(level)
    formatter = logging.Formatter(format_string or _FORMAT)
    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    _DEFAULT_LEVEL = level


__all__ = ["configure_logging", "get_logger", "set_log_level"]
