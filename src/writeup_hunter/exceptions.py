"""
Exception hierarchy for writeup hunter.

Startup errors abort a run before any feed is processed; everything below
the feed level is handled inside the pipeline.
"""

from typing import Any, Optional


class WriteupHunterError(Exception):
    """Base exception for all writeup hunter errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(WriteupHunterError):
    """Required configuration (such as notifier credentials) is missing or invalid."""


class FeedListError(WriteupHunterError):
    """The feed URL list could not be read."""

    def __init__(self, path: str, original_error: Exception):
        super().__init__(
            f"Cannot read feed list {path}: {original_error}",
            context={"path": path, "original_error": str(original_error)},
        )
        self.path = path
