"""
Keyword classifier for routing feed items to topics.

Matching is case-insensitive substring containment over the item title and
description. A keyword table is built once per run and never mutated.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from writeup_hunter.keywords import DEFAULT_KEYWORDS, GENERAL_ROUTING_KEY, GENERAL_TOPIC
from writeup_hunter.logger import get_logger

logger = get_logger(__name__)


class KeywordTable:
    """Read-only keyword to routing key mapping with optional excludes."""

    def __init__(
        self,
        keywords: Mapping[str, str],
        excludes: Optional[set[str]] = None,
        match_all: bool = False,
        general_routing_key: str = GENERAL_ROUTING_KEY,
    ) -> None:
        """Initialize keyword table.

        Args:
            keywords: Keyword or phrase mapped to the routing key of its topic
            excludes: Keywords that veto a match when present
            match_all: Treat every item as matching the general topic
            general_routing_key: Routing key for the general topic
        """
        self._keywords = MappingProxyType(dict(keywords))
        self._lowered = tuple((kw, kw.lower()) for kw in self._keywords if kw.strip())
        self._excludes = frozenset(kw.lower() for kw in (excludes or ()) if kw.strip())
        self.match_all = match_all
        self.general_routing_key = general_routing_key

    @property
    def keywords(self) -> Mapping[str, str]:
        return self._keywords

    @property
    def excludes(self) -> frozenset[str]:
        return self._excludes

    @property
    def search_terms(self) -> tuple[tuple[str, str], ...]:
        """(keyword, lower-cased keyword) pairs in table order."""
        return self._lowered

    def routing_key(self, topic: str) -> str:
        """Routing key for a topic tag (the general key for unknown tags)."""
        return self._keywords.get(topic, self.general_routing_key)

    def __len__(self) -> int:
        return len(self._keywords)

    def __repr__(self) -> str:
        return (
            f"<KeywordTable(keywords={len(self._keywords)}, "
            f"excludes={len(self._excludes)}, match_all={self.match_all})>"
        )

    @classmethod
    def default(cls, general_routing_key: str = GENERAL_ROUTING_KEY) -> "KeywordTable":
        """The built-in vulnerability class taxonomy."""
        return cls(DEFAULT_KEYWORDS, general_routing_key=general_routing_key)

    @classmethod
    def permissive(cls, general_routing_key: str = GENERAL_ROUTING_KEY) -> "KeywordTable":
        """A table that matches everything, used when the keyword file is unusable."""
        return cls({}, match_all=True, general_routing_key=general_routing_key)

    @classmethod
    def from_lines(
        cls,
        lines,
        general_routing_key: str = GENERAL_ROUTING_KEY,
    ) -> "KeywordTable":
        """Build a table from ``[+|-]keyword[ = routing_key]`` lines.

        Blank lines and lines starting with ``#`` are ignored. A ``-`` prefix
        marks an exclude keyword; ``+`` or no prefix marks an include keyword.
        """
        keywords: dict[str, str] = {}
        excludes: set[str] = set()

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith("-"):
                keyword = line[1:].strip()
                if keyword:
                    excludes.add(keyword)
                continue

            if line.startswith("+"):
                line = line[1:].strip()

            keyword, sep, routing = line.partition("=")
            keyword = keyword.strip()
            if not keyword:
                continue
            keywords[keyword] = routing.strip() if sep and routing.strip() else general_routing_key

        return cls(keywords, excludes=excludes, general_routing_key=general_routing_key)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        general_routing_key: str = GENERAL_ROUTING_KEY,
    ) -> "KeywordTable":
        """Load a keyword file.

        Raises:
            OSError: If the file cannot be read
        """
        with Path(path).open("r", encoding="utf-8") as f:
            return cls.from_lines(f, general_routing_key=general_routing_key)


class KeywordClassifier:
    """Classifies item text into the set of matching topic tags."""

    def __init__(self, table: KeywordTable) -> None:
        self.table = table

    def classify(self, title: Optional[str], description: Optional[str] = None) -> set[str]:
        """Return the topic tags whose keyword occurs in the text.

        Args:
            title: Item title
            description: Item description (may be empty)

        Returns:
            Set of matched topic tags, empty when nothing matches or an
            exclude keyword is present
        """
        text = f"{title or ''} {description or ''}".lower()

        if any(excluded in text for excluded in self.table.excludes):
            return set()

        if self.table.match_all:
            return {GENERAL_TOPIC}

        return {keyword for keyword, lowered in self.table.search_terms if lowered in text}

    def routing_key(self, topic: str) -> str:
        return self.table.routing_key(topic)


def load_keyword_table(
    path: Optional[Union[str, Path]],
    general_routing_key: str = GENERAL_ROUTING_KEY,
) -> KeywordTable:
    """Load the keyword table for a run.

    Uses the built-in taxonomy when no path is configured. An unreadable
    file degrades to a match-all table with a warning.
    """
    if not path:
        return KeywordTable.default(general_routing_key)

    try:
        table = KeywordTable.from_file(path, general_routing_key)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read keyword file {path}: {e}; matching all items")
        return KeywordTable.permissive(general_routing_key)

    logger.info(f"Loaded {len(table)} keywords and {len(table.excludes)} excludes from {path}")
    return table
