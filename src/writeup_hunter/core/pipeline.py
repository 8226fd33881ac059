"""
Feed processing pipeline.

One pass reads the feed list, fetches every feed (rate limited, with retries),
drops items that were already seen, do not match a topic or are too old,
records new items in the dedup log and notifies one message per matched
topic. Nothing below the startup checks aborts a pass.
"""

import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from writeup_hunter.config import Config, get_config
from writeup_hunter.core.classifier import KeywordClassifier, KeywordTable, load_keyword_table
from writeup_hunter.core.dedup import DedupStore
from writeup_hunter.core.fetcher import FeedFetcher
from writeup_hunter.core.parser import parse_date
from writeup_hunter.core.rate_limiter import DomainRateLimiter, host_for_url
from writeup_hunter.core.retry import FetchError
from writeup_hunter.exceptions import FeedListError
from writeup_hunter.logger import get_logger
from writeup_hunter.models import Article, RawItem, RunStats
from writeup_hunter.notifications.base import Notifier
from writeup_hunter.notifications.formatter import (
    format_article_message,
    format_start_message,
    format_summary_message,
)

logger = get_logger(__name__)


def read_feed_urls(path: Union[str, Path]) -> list[str]:
    """Read the feed list, one URL per line.

    Blank lines and ``#`` comments are skipped; order is preserved.

    Raises:
        FeedListError: If the file cannot be read
    """
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise FeedListError(str(path), e) from e

    urls = []
    for line in lines:
        url = line.strip()
        if url and not url.startswith("#"):
            urls.append(url)
    return urls


def write_last_run(path: Union[str, Path], when: Optional[datetime] = None) -> str:
    """Overwrite the last-run marker with an ISO 8601 timestamp.

    Raises:
        OSError: If the file cannot be written
    """
    stamp = (when or datetime.now(timezone.utc)).isoformat(timespec="seconds")
    Path(path).write_text(stamp, encoding="utf-8")
    return stamp


def read_last_run(path: Union[str, Path]) -> Optional[datetime]:
    """Timestamp of the previous run, or None if unknown."""
    try:
        value = Path(path).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return parse_date(value)


@dataclass(frozen=True)
class PipelineSettings:
    """Tunables of a pipeline pass."""

    window_days: int = 7
    feed_delay: float = 5.0
    feed_jitter: float = 1.0
    include_unparseable_dates: bool = False
    announce_start: bool = True
    app_name: str = "Writeup Hunter"
    link_mirror: Optional[str] = None
    mirror_domains: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: Config) -> "PipelineSettings":
        return cls(
            window_days=config.pipeline.window_days,
            feed_delay=config.pipeline.feed_delay_seconds,
            feed_jitter=config.pipeline.feed_jitter_seconds,
            include_unparseable_dates=config.pipeline.unparseable_dates == "include",
            announce_start=config.pipeline.announce_start,
            app_name=config.app_name,
            link_mirror=config.telegram.link_mirror,
            mirror_domains=tuple(config.telegram.mirror_domains),
        )


class Pipeline:
    """Runs one feed processing pass."""

    def __init__(
        self,
        feeds_file: Union[str, Path],
        dedup_store: DedupStore,
        fetcher: FeedFetcher,
        rate_limiter: DomainRateLimiter,
        notifier: Notifier,
        keywords_file: Optional[Union[str, Path]] = None,
        keyword_table: Optional[KeywordTable] = None,
        last_run_file: Optional[Union[str, Path]] = None,
        settings: Optional[PipelineSettings] = None,
        general_routing_key: str = "0",
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        """Initialize pipeline.

        Args:
            feeds_file: Feed URL list
            dedup_store: Store of already processed links
            fetcher: Feed fetcher
            rate_limiter: Per-host request spacing
            notifier: Notification sink
            keywords_file: Keyword file; the built-in table is used when unset
            keyword_table: Preloaded keyword table (takes precedence over keywords_file)
            last_run_file: Where to write the last-run timestamp
            settings: Pass tunables
            general_routing_key: Routing key for status messages
            now: Wall clock returning an aware datetime
            sleep: Sleep function for the inter-feed delay
            rng: Random source for the inter-feed jitter
        """
        self.feeds_file = feeds_file
        self.dedup_store = dedup_store
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.notifier = notifier
        self.keywords_file = keywords_file
        self.keyword_table = keyword_table
        self.last_run_file = last_run_file
        self.settings = settings or PipelineSettings()
        self.general_routing_key = general_routing_key
        self._now = now
        self._sleep = sleep
        self._rng = rng or random.Random()

        self.classifier: Optional[KeywordClassifier] = (
            KeywordClassifier(keyword_table) if keyword_table is not None else None
        )
        self.stats = RunStats()

    def run(self) -> RunStats:
        """Process every configured feed once.

        Returns:
            Statistics of the pass

        Raises:
            FeedListError: If the feed list cannot be read
        """
        urls = read_feed_urls(self.feeds_file)
        self._load_dedup_store()
        if self.keyword_table is None:
            self.classifier = self._load_classifier()

        self.stats = RunStats(started_at=self._now(), feeds_total=len(urls))
        cutoff = self._now() - timedelta(days=self.settings.window_days)

        logger.info(
            f"Starting pass over {len(urls)} feeds, cutoff {cutoff.isoformat(timespec='seconds')}"
        )
        if self.settings.announce_start:
            self._notify(format_start_message(self.settings.app_name, self.stats), self.general_routing_key)

        for index, url in enumerate(urls):
            logger.info(f"Processing feed {index + 1}/{len(urls)}: {url}")
            self.process_feed(url, cutoff)

            if index < len(urls) - 1:
                self._pause_between_feeds()

        self.stats.finish(self._now())
        summary = format_summary_message(self.stats)
        logger.info(summary)
        self._notify(summary, self.general_routing_key)
        self._write_last_run()

        return self.stats

    def process_feed(self, url: str, cutoff: datetime) -> int:
        """Fetch one feed and notify its new matching items.

        Returns:
            Number of notifications dispatched for this feed
        """
        self.rate_limiter.wait(host_for_url(url))

        try:
            items = self.fetcher.fetch_with_retry(url)
        except FetchError as e:
            logger.error(f"Error fetching feed from {url}: {e}")
            self.stats.add_feed_failure(url)
            return 0

        found = 0
        for item in items:
            found += self.process_item(item, cutoff)

        logger.info(f"Found {found} new articles in {url}")
        return found

    def process_item(self, item: RawItem, cutoff: datetime) -> int:
        """Filter, record and notify a single item.

        The keyword file is loaded on first use when no table was given.

        Returns:
            Number of notifications dispatched
        """
        self.stats.items_seen += 1

        if self.dedup_store.has(item.link):
            self.stats.items_skipped_duplicate += 1
            return 0

        topics = self._get_classifier().classify(item.title, item.description)
        if not topics:
            self.stats.items_skipped_unmatched += 1
            return 0

        published_at = parse_date(item.published)
        if published_at is None:
            if not self.settings.include_unparseable_dates:
                logger.warning(f"Skipping {item.link}: unparseable date {item.published!r}")
                self.stats.items_skipped_date += 1
                return 0
            logger.debug(f"Including {item.link} despite unparseable date {item.published!r}")
        elif published_at < cutoff:
            self.stats.items_skipped_date += 1
            return 0

        # Recorded before dispatch: a crash between the two loses a
        # notification rather than sending it twice
        try:
            self.dedup_store.record(item.link)
        except (OSError, ValueError) as e:
            logger.error(f"Error saving {item.link} to dedup log: {e}")
            return 0

        article = Article.from_item(item, topics)
        return self.dispatch(article)

    def dispatch(self, article: Article) -> int:
        """Send one notification per topic of an article."""
        sent = 0
        for topic in sorted(article.topics):
            message = format_article_message(
                article,
                topic,
                mirror=self.settings.link_mirror,
                mirror_domains=self.settings.mirror_domains,
            )
            self._notify(message, self._get_classifier().routing_key(topic))
            logger.success(message.replace("\n", " | "))
            self.stats.articles_found += 1
            sent += 1
        return sent

    def _notify(self, text: str, routing_key: str) -> bool:
        delivered = self.notifier.send(text, routing_key)
        if not delivered:
            self.stats.notifications_failed += 1
        return delivered

    def _load_classifier(self) -> KeywordClassifier:
        table = load_keyword_table(self.keywords_file, self.general_routing_key)
        return KeywordClassifier(table)

    def _get_classifier(self) -> KeywordClassifier:
        if self.classifier is None:
            self.classifier = self._load_classifier()
        return self.classifier

    def _load_dedup_store(self) -> None:
        try:
            seen = self.dedup_store.load()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read dedup log {self.dedup_store.path}: {e}; starting empty")
            return
        logger.info(f"Loaded {len(seen)} previously seen links")

    def _pause_between_feeds(self) -> None:
        delay = self.settings.feed_delay
        if self.settings.feed_jitter > 0:
            delay += self._rng.uniform(0, self.settings.feed_jitter)
        if delay > 0:
            self._sleep(delay)

    def _write_last_run(self) -> None:
        if not self.last_run_file:
            return
        try:
            write_last_run(self.last_run_file, self.stats.finished_at)
        except OSError as e:
            logger.error(f"Error updating last check time: {e}")


def create_pipeline(
    notifier: Notifier,
    config: Optional[Config] = None,
    **overrides,
) -> Pipeline:
    """Build a pipeline and its components from configuration.

    Args:
        notifier: Notification sink
        config: Configuration (the global config when omitted)
        **overrides: Keyword arguments passed to Pipeline

    Returns:
        Configured Pipeline instance
    """
    config = config or get_config()

    options = {
        "feeds_file": config.storage.feeds_file,
        "dedup_store": DedupStore(config.storage.seen_file),
        "fetcher": FeedFetcher.from_config(config.fetcher),
        "rate_limiter": DomainRateLimiter(
            min_delay=config.rate_limit.min_delay_seconds,
            jitter=config.rate_limit.jitter_seconds,
        ),
        "notifier": notifier,
        "keywords_file": config.storage.keywords_file,
        "last_run_file": config.storage.last_run_file,
        "settings": PipelineSettings.from_config(config),
        "general_routing_key": config.telegram.general_routing_key,
    }
    options.update(overrides)
    return Pipeline(**options)
