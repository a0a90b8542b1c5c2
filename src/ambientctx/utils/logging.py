"""Logging setup for ambientctx.

Installs the console and optional file handlers on the package logger.
The HTTP client libraries log every request at INFO, which drowns out the
capture log at the default level, so they are held at WARNING unless
debug logging is requested.
"""

from __future__ import annotations

import logging
import sys

from ambientctx.config.settings import LoggingConfig

PACKAGE_LOGGER = "ambientctx"
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure the ``ambientctx`` logger from ``config``.

    Safe to call more than once: handlers from a previous call are closed
    and replaced, so each record is written once.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).

    Returns:
        The configured package logger.
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file, encoding="utf-8"))

    formatter = logging.Formatter(config.format)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    package_logger.info("Logging initialized at %s level", logging.getLevelName(level))
    return package_logger
