"""
Per-host request spacing.
"""

import random
import threading
import time
from typing import Callable, Optional
from urllib.parse import urlparse

from writeup_hunter.logger import get_logger

logger = get_logger(__name__)

DEFAULT_HOST = "default"


def host_for_url(url: str) -> str:
    """Hostname of a feed URL, or ``"default"`` when it has none."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return DEFAULT_HOST
    return hostname or DEFAULT_HOST


class DomainRateLimiter:
    """Enforces a minimum delay plus jitter between requests to one host.

    Each call reserves the next slot for its host while holding the lock and
    sleeps after releasing it, so waits on different hosts run independently.
    """

    def __init__(
        self,
        min_delay: float,
        jitter: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Initialize rate limiter.

        Args:
            min_delay: Minimum seconds between two requests to the same host
            jitter: Upper bound of the random seconds added to a wait
            clock: Monotonic time source
            sleep: Sleep function
            rng: Random source for jitter
        """
        if min_delay < 0 or jitter < 0:
            raise ValueError("min_delay and jitter must be non-negative")

        self.min_delay = min_delay
        self.jitter = jitter
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._last_request: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, hostname: str) -> float:
        """Block until a request to ``hostname`` may be issued.

        Args:
            hostname: Host the next request goes to

        Returns:
            Seconds waited
        """
        with self._lock:
            now = self._clock()
            last = self._last_request.get(hostname)

            delay = 0.0
            if last is not None:
                elapsed = now - last
                if elapsed < self.min_delay:
                    delay = self.min_delay - elapsed
                    if self.jitter > 0:
                        delay += self._rng.uniform(0, self.jitter)

            self._last_request[hostname] = now + delay

        if delay > 0:
            logger.debug(f"Rate limiting {hostname}: waiting {delay:.2f}s")
            self._sleep(delay)
        return delay

    def wait_for_url(self, url: str) -> float:
        return self.wait(host_for_url(url))

    def reset(self) -> None:
        with self._lock:
            self._last_request.clear()
