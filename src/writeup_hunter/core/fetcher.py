"""
RSS/Atom/JSON feed fetcher with error classification and retry logic.
"""

import random
import time
from typing import Callable, Optional

import feedparser
import httpx

from writeup_hunter.config import FetcherConfig, get_config
from writeup_hunter.core.parser import entry_to_item, json_record_to_item
from writeup_hunter.core.retry import (
    ErrorCategory,
    FetchError,
    backoff_delay,
    classify_status,
)
from writeup_hunter.logger import get_logger
from writeup_hunter.models import RawItem

logger = get_logger(__name__)


class FeedFetcher:
    """Fetches a feed URL into normalized items, retrying transient failures."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        jitter: Optional[float] = None,
        max_delay: Optional[float] = None,
        user_agent: Optional[str] = None,
        json_feed_patterns: Optional[list[str]] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """Initialize feed fetcher.

        Args:
            timeout_seconds: Request timeout in seconds
            max_retries: Retries after the first attempt
            base_delay: Backoff base delay in seconds
            jitter: Upper bound of random seconds added to each backoff
            max_delay: Backoff cap in seconds
            user_agent: User-Agent header for HTTP requests
            json_feed_patterns: URL fragments that select the JSON parser
            sleep: Sleep function used between attempts
            rng: Random source for backoff jitter
        """
        config = get_config().fetcher

        self.timeout_seconds = config.timeout_seconds if timeout_seconds is None else timeout_seconds
        self.max_retries = config.max_retries if max_retries is None else max_retries
        self.base_delay = config.base_delay_seconds if base_delay is None else base_delay
        self.jitter = config.jitter_seconds if jitter is None else jitter
        self.max_delay = config.max_delay_seconds if max_delay is None else max_delay
        self.user_agent = user_agent or config.user_agent
        self.json_feed_patterns = (
            config.json_feed_patterns if json_feed_patterns is None else json_feed_patterns
        )

        # HTTP client configuration
        self.follow_redirects = config.follow_redirects
        self.max_redirects = config.max_redirects

        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, config: FetcherConfig, **kwargs) -> "FeedFetcher":
        """Build a fetcher from explicit fetcher settings."""
        fetcher = cls(
            timeout_seconds=config.timeout_seconds,
            max_retries=config.max_retries,
            base_delay=config.base_delay_seconds,
            jitter=config.jitter_seconds,
            max_delay=config.max_delay_seconds,
            user_agent=config.user_agent,
            json_feed_patterns=list(config.json_feed_patterns),
            **kwargs,
        )
        fetcher.follow_redirects = config.follow_redirects
        fetcher.max_redirects = config.max_redirects
        return fetcher

    def is_json_feed(self, url: str) -> bool:
        return any(pattern in url for pattern in self.json_feed_patterns)

    def fetch(self, url: str) -> list[RawItem]:
        """Fetch and parse a feed once.

        Args:
            url: Feed URL

        Returns:
            Items in source order

        Raises:
            FetchError: On any transport, HTTP or parse failure
        """
        if self.is_json_feed(url):
            return self._fetch_json(url)
        return self._fetch_feed(url)

    def fetch_with_retry(self, url: str) -> list[RawItem]:
        """Fetch a feed, retrying retryable failures with exponential backoff.

        Args:
            url: Feed URL

        Returns:
            Items in source order

        Raises:
            FetchError: After a fatal failure or when all attempts failed
        """
        total_attempts = self.max_retries + 1
        last_error: Optional[FetchError] = None

        for attempt in range(total_attempts):
            try:
                items = self.fetch(url)
            except FetchError as e:
                last_error = e
            else:
                if attempt:
                    logger.info(f"Fetched {url} after {attempt + 1} attempts")
                return items

            if not last_error.retryable:
                logger.error(f"Fatal error fetching {url}: {last_error}")
                break

            if attempt + 1 < total_attempts:
                delay = backoff_delay(attempt, self.base_delay, self.jitter, self.max_delay, self._rng)
                logger.warning(
                    f"{last_error.category.value} fetching {url} "
                    f"(attempt {attempt + 1}/{total_attempts}), retrying in {delay:.1f}s"
                )
                self._sleep(delay)

        attempts = attempt + 1
        raise FetchError(
            f"{url}: failed after {attempts} attempt(s): {last_error}",
            url=url,
            category=last_error.category,
            status_code=last_error.status_code,
            attempts=attempts,
        ) from last_error

    def _fetch_http(self, url: str) -> httpx.Response:
        """Fetch URL with HTTP client.

        Raises:
            FetchError: On transport errors and non-2xx responses
        """
        headers = {"User-Agent": self.user_agent}

        try:
            with httpx.Client(
                timeout=self.timeout_seconds,
                follow_redirects=self.follow_redirects,
                max_redirects=self.max_redirects,
            ) as client:
                response = client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise FetchError.from_exception(url, e) from e

        category = classify_status(response.status_code)
        if category is not None:
            raise FetchError(
                f"HTTP {response.status_code} from {url}",
                url=url,
                category=category,
                status_code=response.status_code,
            )
        return response

    def _fetch_feed(self, url: str) -> list[RawItem]:
        response = self._fetch_http(url)

        parsed = feedparser.parse(response.content)
        entries = parsed.get("entries", [])
        if parsed.get("bozo") and not entries:
            reason = parsed.get("bozo_exception")
            raise FetchError(
                f"Cannot parse feed {url}: {reason}",
                url=url,
                category=ErrorCategory.OTHER,
                status_code=response.status_code,
            )

        items = self._normalize(url, entry_to_item, entries)
        logger.debug(f"Parsed {len(items)} items from {url}")
        return items

    def _fetch_json(self, url: str) -> list[RawItem]:
        response = self._fetch_http(url)

        if response.status_code != 200:
            raise FetchError(
                f"Unexpected status code {response.status_code} from {url}",
                url=url,
                category=ErrorCategory.OTHER,
                status_code=response.status_code,
            )

        try:
            records = response.json()
        except ValueError as e:
            raise FetchError(
                f"Invalid JSON feed {url}: {e}",
                url=url,
                category=ErrorCategory.OTHER,
                status_code=response.status_code,
            ) from e

        if not isinstance(records, list):
            raise FetchError(
                f"JSON feed {url} is not a list",
                url=url,
                category=ErrorCategory.OTHER,
                status_code=response.status_code,
            )

        items = self._normalize(url, json_record_to_item, records)
        logger.debug(f"Parsed {len(items)} items from JSON feed {url}")
        return items

    def _normalize(self, url: str, convert, entries) -> list[RawItem]:
        """Convert raw entries, turning malformed input into a FetchError.

        Raises:
            FetchError: If an entry cannot be converted
        """
        try:
            return [item for item in (convert(entry) for entry in entries) if item]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise FetchError(
                f"Malformed entry in feed {url}: {e}",
                url=url,
                category=ErrorCategory.OTHER,
            ) from e


def create_fetcher(**overrides) -> FeedFetcher:
    """Create a FeedFetcher configured from the global config.

    Args:
        **overrides: Keyword arguments passed to FeedFetcher

    Returns:
        Configured FeedFetcher instance
    """
    return FeedFetcher(**overrides)
