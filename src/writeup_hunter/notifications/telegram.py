"""
Telegram Bot API notifier.

Posts plain text messages to a forum-enabled chat, one topic (message thread)
per routing key.
"""

from typing import Optional

import httpx

from writeup_hunter.config import TelegramConfig
from writeup_hunter.exceptions import ConfigError
from writeup_hunter.logger import get_logger
from writeup_hunter.notifications.base import Notifier

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier(Notifier):
    """Sends messages through the Telegram Bot API ``sendMessage`` method."""

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        api_base: str = "https://api.telegram.org",
        timeout_seconds: float = 10,
        general_routing_key: str = "0",
        client: Optional[httpx.Client] = None,
    ):
        """Initialize Telegram notifier.

        Args:
            bot_token: Bot API token
            channel_id: Destination chat id
            api_base: Bot API base URL
            timeout_seconds: Request timeout
            general_routing_key: Routing key that posts to the main chat
                (no message thread)
            client: Optional preconfigured HTTP client
        """
        if not bot_token:
            raise ConfigError("TELEGRAM_BOT_TOKEN is not set")
        if not channel_id:
            raise ConfigError("TELEGRAM_CHANNEL_ID is not set")

        self.channel_id = channel_id
        self.general_routing_key = general_routing_key
        self._url = f"{api_base.rstrip('/')}/bot{bot_token}/sendMessage"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    @classmethod
    def from_config(cls, config: TelegramConfig) -> "TelegramNotifier":
        """Build a notifier from settings.

        Raises:
            ConfigError: If the bot token or channel id is missing
        """
        return cls(
            bot_token=config.bot_token or "",
            channel_id=config.channel_id or "",
            api_base=config.api_base,
            timeout_seconds=config.timeout_seconds,
            general_routing_key=config.general_routing_key,
        )

    def build_payload(self, text: str, routing_key: str) -> dict:
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[: MAX_MESSAGE_LENGTH - 3] + "..."

        payload = {"chat_id": self.channel_id, "text": text}
        if routing_key and routing_key != self.general_routing_key:
            payload["message_thread_id"] = routing_key
        return payload

    def send(self, text: str, routing_key: str) -> bool:
        payload = self.build_payload(text, routing_key)

        try:
            response = self._client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            # The exception text can contain the request URL, which embeds the token
            logger.error(f"Error sending Telegram message: {type(e).__name__}")
            return False

        if response.status_code != 200:
            logger.error(
                f"Telegram API responded with status {response.status_code}: "
                f"{response.text[:200]}"
            )
            return False

        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
