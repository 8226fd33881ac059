"""
Notifier interface and the logging notifier used for dry runs.
"""

from abc import ABC, abstractmethod

from writeup_hunter.logger import get_logger

logger = get_logger(__name__)


class Notifier(ABC):
    """A sink for notification text.

    Implementations must not raise on delivery failures: they log and
    return False.
    """

    @abstractmethod
    def send(self, text: str, routing_key: str) -> bool:
        """Deliver a message.

        Args:
            text: Message text
            routing_key: Destination topic within the channel

        Returns:
            True if the message was accepted
        """

    def close(self) -> None:
        """Release any held resources."""


class ConsoleNotifier(Notifier):
    """Writes notifications to the log instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, text: str, routing_key: str) -> bool:
        self.sent.append((text, routing_key))
        logger.info(f"[topic {routing_key}] {text}")
        return True
