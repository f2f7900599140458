"""Logging setup: loguru sink plus interception of stdlib loggers (httpx)."""

from __future__ import annotations

import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, record.getMessage())


def configure_logging(debug: bool = False) -> None:
    """Send logs to stderr at DEBUG (``debug=True``) or WARNING."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "WARNING",
        format="{time:HH:mm:ss} {level} {message}",
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
    for name in ("httpx", "httpcore"):
        std_logger = logging.getLogger(name)
        std_logger.propagate = True
        std_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if debug:
        logger.debug("Debug logging enabled")
