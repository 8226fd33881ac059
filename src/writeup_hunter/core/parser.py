"""
Feed entry normalization and published-date parsing.

Handles field standardization, HTML cleaning and the fallback list of date
formats seen across RSS, Atom and JSON feeds.
"""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from html import unescape
from typing import Any, Optional

from bs4 import BeautifulSoup

from writeup_hunter.logger import get_logger
from writeup_hunter.models import RawItem

logger = get_logger(__name__)

# Tried in order after RFC 2822 and ISO 8601 parsing
DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S",
    "%d %b %Y %H:%M:%S %Z",
    "%d %b %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M:%S %Z",
    "%a, %d %b %Y %H:%M:%S",
    "%Y-%m-%d",
    "%b %d, %Y",
    "%d %b %Y",
]


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """Parse a feed date string into an aware UTC datetime.

    Naive timestamps are taken to be UTC.

    Args:
        date_str: Date string in one of the supported formats

    Returns:
        datetime in UTC, or None if no format matches
    """
    if not date_str:
        return None

    if isinstance(date_str, datetime):
        return _as_utc(date_str)

    value = date_str.strip()
    if not value:
        return None

    # RFC 1123 / RFC 2822 ("Mon, 02 Jan 2006 15:04:05 GMT" or "+0000")
    try:
        return _as_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        pass

    # RFC 3339 / ISO 8601, with "Z" suffix support for older interpreters
    try:
        return _as_utc(datetime.fromisoformat(re.sub(r"Z$", "+00:00", value)))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return _as_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue

    logger.debug(f"Failed to parse date: {date_str}")
    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def strip_html(html: Any) -> str:
    """Strip HTML tags from text and collapse whitespace.

    Args:
        html: HTML or plain text; other values are converted with str()

    Returns:
        Plain text
    """
    if html is None or html == "":
        return ""
    if not isinstance(html, str):
        html = str(html)

    if "<" in html:
        soup = BeautifulSoup(html, "html.parser")
        for element in soup(["script", "style", "noscript"]):
            element.decompose()
        html = soup.get_text(separator=" ")

    text = unescape(html)
    return re.sub(r"\s+", " ", text).strip()


def _normalize_title(title: Any) -> str:
    if not title:
        return ""
    return re.sub(r"\s+", " ", unescape(str(title)).strip())


def _normalize_link(link: Any) -> str:
    if not link or not isinstance(link, str):
        return ""
    return link.strip()


def _names(values: Any, key: str) -> tuple[str, ...]:
    """Collect ``value[key]`` strings from a JSON list of objects."""
    if not isinstance(values, list):
        return ()
    return tuple(
        str(value.get(key)).strip()
        for value in values
        if isinstance(value, dict) and value.get(key)
    )


def entry_to_item(entry: dict) -> Optional[RawItem]:
    """Normalize a feedparser entry into a RawItem.

    Args:
        entry: Entry from feedparser's ``entries`` list

    Returns:
        RawItem, or None when the entry has no link to identify it
    """
    link = _normalize_link(entry.get("link"))
    if not link:
        logger.debug(f"Skipping entry without link: {entry.get('title')!r}")
        return None

    description = entry.get("summary") or entry.get("description") or ""
    published = entry.get("published") or entry.get("updated") or ""

    authors = []
    for author in entry.get("authors") or []:
        name = author.get("name") if isinstance(author, dict) else author
        if name:
            authors.append(str(name).strip())

    tags = []
    for tag in entry.get("tags") or []:
        term = tag.get("term") if isinstance(tag, dict) else tag
        if term:
            tags.append(str(term).strip())

    return RawItem(
        title=_normalize_title(entry.get("title")),
        link=link,
        description=strip_html(description),
        published=str(published).strip(),
        authors=tuple(authors),
        tags=tuple(tags),
    )


def json_record_to_item(record: dict) -> Optional[RawItem]:
    """Normalize one object of a JSON write-up index into a RawItem.

    Expected keys: title, description, link, published, authors[{name}],
    vulnerabilities[{title}]. Fields of the wrong type are dropped or
    converted to text; a record without a string link yields None.
    """
    if not isinstance(record, dict):
        return None

    link = _normalize_link(record.get("link"))
    if not link:
        return None

    published = record.get("published")

    return RawItem(
        title=_normalize_title(record.get("title")),
        link=link,
        description=strip_html(record.get("description")),
        published=published.strip() if isinstance(published, str) else "",
        authors=_names(record.get("authors"), "name"),
        tags=_names(record.get("vulnerabilities"), "title"),
    )
