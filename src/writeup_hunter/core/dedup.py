"""
Append-only store of links that have already been processed.
"""

import os
import threading
from pathlib import Path
from typing import Union

from writeup_hunter.logger import get_logger

logger = get_logger(__name__)


class DedupStore:
    """Persistent set of seen links backed by a one-link-per-line log.

    The log only grows: links are never removed or rewritten.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def load(self) -> set[str]:
        """Read the whole log into memory.

        A missing file is treated as an empty log.

        Raises:
            OSError: If the file exists but cannot be read
        """
        seen: set[str] = set()
        if self.path.exists():
            with self.path.open("r", encoding="utf-8") as f:
                for line in f:
                    link = line.strip()
                    if link:
                        seen.add(link)

        with self._lock:
            self._seen = seen
        logger.debug(f"Loaded {len(seen)} seen links from {self.path}")
        return set(seen)

    def has(self, link: str) -> bool:
        with self._lock:
            return link in self._seen

    def record(self, link: str) -> bool:
        """Append a link to the log, durably.

        Args:
            link: Link to mark as seen

        Returns:
            True if a line was written, False if the link was already known

        Raises:
            ValueError: If the link is empty or contains a line break
            OSError: If the log cannot be written
        """
        link = link.strip()
        if not link or "\n" in link or "\r" in link:
            raise ValueError(f"Invalid link for dedup log: {link!r}")

        with self._lock:
            if link in self._seen:
                return False

            if self.path.parent != Path("."):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(link + "\n")
                f.flush()
                os.fsync(f.fileno())

            self._seen.add(link)
            return True

    def __contains__(self, link: str) -> bool:
        return self.has(link)

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
