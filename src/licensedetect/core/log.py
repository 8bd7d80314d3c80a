# log.py
# SPDX-License-Identifier: MIT
"""Package-wide logging helpers.

A NullHandler is installed on the package logger so that library callers who
never configure logging do not see "no handler" warnings. Applications and the
CLI call :func:`configure_logging` to attach a stream handler.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager

__all__ = [
    "PACKAGE_LOGGER_NAME",
    "get_logger",
    "configure_logging",
    "temp_level",
]

PACKAGE_LOGGER_NAME = "licensedetect"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a named logger scoped to licensedetect.

    Args:
        name (str | None): Fully qualified logger name. Defaults to the
            package logger when omitted.

    Returns:
        logging.Logger: Logger instance for the requested name.
    """
    return logging.getLogger(name or PACKAGE_LOGGER_NAME)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream=None,
    fmt: str | None = None,
    datefmt: str | None = None,
    propagate: bool | None = None,
    logger_name: str = PACKAGE_LOGGER_NAME,
) -> logging.Logger:
    """Attach a single stream handler to a licensedetect logger.

    Args:
        level (int | str): Logging level or level name.
        stream (IO[str] | None): Target stream; defaults to sys.stderr.
        fmt (str | None): Log format string.
        datefmt (str | None): Date format string for the handler.
        propagate (bool | None): Whether records bubble up to ancestor
            loggers. None keeps propagation on so root handlers (for example
            pytest's caplog) still see records.
        logger_name (str): Logger to configure.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = get_logger(logger_name or PACKAGE_LOGGER_NAME)
    logger.setLevel(_coerce_level(level))
    logger.propagate = True if propagate is None else bool(propagate)

    handler = _find_stream_handler(logger)
    if handler is None:
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FORMAT, datefmt=datefmt))
        logger.addHandler(handler)
        return logger
    # Flushing a closed stream raises, so swap it without setStream().
    if getattr(handler.stream, "closed", False):
        handler.stream = stream if stream is not None else sys.stderr
    elif stream is not None:
        handler.setStream(stream)
    if fmt is not None:
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    return logger


def _find_stream_handler(logger: logging.Logger) -> logging.StreamHandler | None:
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            return handler
    return None


@contextmanager
def temp_level(level: int | str, name: str | None = None):
    """Temporarily set a logger level inside a ``with`` block."""
    logger = get_logger(name or PACKAGE_LOGGER_NAME)
    old = logger.level
    logger.setLevel(_coerce_level(level))
    try:
        yield logger
    finally:
        logger.setLevel(old)
