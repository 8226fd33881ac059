"""
Message formatting for article and status notifications.
"""

from typing import Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from writeup_hunter.models import Article, RunStats

TRACKING_PARAMS = frozenset({"source"})
TRACKING_PREFIXES = ("utm_",)


def clean_url(raw_url: str) -> str:
    """Remove tracking parameters (``source``, ``utm_*``) from a URL.

    Returns the input unchanged if it cannot be parsed.
    """
    try:
        parsed = urlparse(raw_url)
    except ValueError:
        return raw_url

    if not parsed.query:
        return raw_url

    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS and not key.startswith(TRACKING_PREFIXES)
    ]
    return urlunparse(parsed._replace(query=urlencode(query)))


def mirror_url(url: str, mirror: Optional[str], domains: Sequence[str]) -> str:
    """Route links on paywalled domains through a reader mirror."""
    if not mirror:
        return url
    host = (urlparse(url).hostname or "").lower()
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return f"{mirror.rstrip('/')}/{url}"
    return url


def format_article_message(
    article: Article,
    topic: str,
    mirror: Optional[str] = None,
    mirror_domains: Sequence[str] = (),
) -> str:
    """Format the notification for one topic of an article."""
    link = mirror_url(clean_url(article.link), mirror, mirror_domains)
    return (
        f"▶ {article.title}\n"
        f"Published: {article.published}\n"
        f"Link: {link}\n"
        f"Tags: {topic}"
    )


def format_start_message(app_name: str, stats: RunStats) -> str:
    started = stats.started_at.strftime("%Y-%m-%d %H:%M:%S")
    return f"{app_name} Started - {started}"


def format_duration(seconds: float) -> str:
    """Format seconds as e.g. ``1h2m3s`` / ``4m5s`` / ``6s``."""
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def format_summary_message(stats: RunStats) -> str:
    return (
        f"Completed in {format_duration(stats.duration_seconds)}. "
        f"Total new articles found: {stats.articles_found}. "
        f"Failed feeds: {stats.feeds_failed}/{stats.feeds_total}"
    )
