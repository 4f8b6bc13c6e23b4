"""
Logging configuration for the pdfpoppler diagnostic command.

Handlers are attached to the `pdfpoppler` package logger only, never the
root logger, so an embedding application keeps its own logging policy.
Records go to stderr because `pdfpoppler run` writes tool output to stdout.
"""

from __future__ import annotations

import logging
import sys

from pdfpoppler import __version__

__all__ = [
    "PACKAGE_LOGGER",
    "logging_setup",
    "logFormatWithVersion_get",
    "logLevel_parse",
]

PACKAGE_LOGGER = "pdfpoppler"


def logging_setup(level: str, log_format: str, log_file: str | None) -> logging.Logger:
    """
    Attach stderr (and optional file) handlers to the package logger.

    Calling again replaces the handlers from the previous call.

    Args:
        level:
            Log level name (for example `INFO` or `debug`).
        log_format:
            Base formatter string.
        log_file:
            Optional log file path.

    Returns:
        The configured package logger.

    Raises:
        ValueError: If the level name is unknown.
    """
    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logLevel_parse(level))

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(logFormatWithVersion_get(log_format))
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.propagate = False
    return package_logger


def logLevel_parse(level: str) -> int:
    """Map a level name to its numeric value, rejecting unknown names"""
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def logFormatWithVersion_get(log_format: str) -> str:
    """
    Inject the package version after the timestamp.

    Formats without `%(asctime)s` are returned unchanged.
    """
    return log_format.replace("%(asctime)s", f"%(asctime)s [v{__version__}]")
