"""
Logging configuration for writeup hunter.

Uses loguru for console output and a rotating log file. Records from
libraries that log through the standard ``logging`` module (httpx, httpcore)
are forwarded to loguru, and Telegram bot tokens are masked in every message.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from writeup_hunter.config import get_config

# Bot API URLs embed the token: https://api.telegram.org/bot<id>:<secret>/sendMessage
_TOKEN_PATTERN = re.compile(r"/bot\d+:[A-Za-z0-9_-]+")

# Standard library loggers that are noisy at INFO
LIBRARY_LOGGERS = ("httpx", "httpcore")


def redact_secrets(message: str) -> str:
    """Mask Telegram bot tokens in a log message."""
    return _TOKEN_PATTERN.sub("/bot<redacted>", message)


def _patch_record(record) -> None:
    record["message"] = redact_secrets(record["message"])


class InterceptHandler(logging.Handler):
    """Forwards standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        _logger.bind(name=record.name).opt(exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    rotation: Optional[str] = None,
    retention: Optional[str] = None,
    format: Optional[str] = None,
) -> None:
    """Configure the logger with file and console handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, etc.)
        log_file: Path to log file
        rotation: Log rotation setting (e.g., "10 MB", "1 day")
        retention: Log retention setting (e.g., "14 days", "1 week")
        format: Log format string
    """
    log_config = get_config().logging

    # Use provided values or fall back to config
    level = (level or log_config.level).upper()
    log_file = log_file or log_config.file_path
    rotation = rotation or log_config.rotation
    retention = retention or log_config.retention
    format = format or log_config.format

    # Remove default handler
    _logger.remove()
    _logger.configure(patcher=_patch_record)

    if log_config.console_enabled:
        _logger.add(
            sys.stderr,
            format=format,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_config.file_enabled:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        _logger.add(
            log_file,
            format=format,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            enqueue=True,  # Thread-safe logging
            backtrace=True,
            diagnose=False,
        )

    intercept_library_logging(log_config.library_level)


def intercept_library_logging(level: str = "WARNING") -> None:
    """Route standard library logging into loguru.

    Args:
        level: Minimum level kept for the loggers in LIBRARY_LOGGERS
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(_logger.level(level.upper()).no)


def get_logger(name: Optional[str] = None):
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Logger instance
    """
    if name:
        return _logger.bind(name=name)
    return _logger


# Re-export logger for direct use
logger = _logger

__all__ = [
    "InterceptHandler",
    "get_logger",
    "intercept_library_logging",
    "logger",
    "redact_secrets",
    "setup_logger",
]
