"""Notification sinks and message formatting."""

from writeup_hunter.notifications.base import ConsoleNotifier, Notifier
from writeup_hunter.notifications.formatter import (
    clean_url,
    format_article_message,
    format_start_message,
    format_summary_message,
)
from writeup_hunter.notifications.telegram import TelegramNotifier

__all__ = [
    "Notifier",
    "ConsoleNotifier",
    "TelegramNotifier",
    "clean_url",
    "format_article_message",
    "format_start_message",
    "format_summary_message",
]
