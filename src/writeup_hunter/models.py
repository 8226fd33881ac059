"""
Data models for feed items and run statistics.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class RawItem:
    """A normalized feed entry as produced by the fetcher."""

    title: str
    link: str
    description: str = ""
    published: str = ""
    authors: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """Text searched by the keyword classifier."""
        return f"{self.title} {self.description}"


@dataclass(frozen=True)
class Article:
    """A feed item that matched at least one topic."""

    title: str
    link: str
    description: str
    published: str
    topics: frozenset[str]

    def __post_init__(self):
        """Validate article."""
        if not self.topics:
            raise ValueError("Article must match at least one topic")

    @classmethod
    def from_item(cls, item: RawItem, topics: set[str]) -> "Article":
        return cls(
            title=item.title,
            link=item.link,
            description=item.description,
            published=item.published,
            topics=frozenset(topics),
        )


@dataclass
class RunStats:
    """Counters for a single pipeline pass."""

    feeds_total: int = 0
    feeds_failed: int = 0
    articles_found: int = 0
    items_seen: int = 0
    items_skipped_duplicate: int = 0
    items_skipped_unmatched: int = 0
    items_skipped_date: int = 0
    notifications_failed: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    failed_urls: list[str] = field(default_factory=list)

    def add_feed_failure(self, url: str) -> None:
        self.feeds_failed += 1
        self.failed_urls.append(url)

    def finish(self, now: Optional[datetime] = None) -> None:
        self.finished_at = now or datetime.now(timezone.utc)

    @property
    def duration_seconds(self) -> float:
        """Elapsed time of the pass, up to now if it has not finished."""
        end = self.finished_at or datetime.now(timezone.utc)
        return max(0.0, (end - self.started_at).total_seconds())

    @property
    def success_rate(self) -> float:
        """Share of feeds fetched successfully."""
        if self.feeds_total == 0:
            return 0.0
        return (self.feeds_total - self.feeds_failed) / self.feeds_total
