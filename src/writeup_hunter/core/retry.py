"""
Fetch error taxonomy and retry policy.

Every failure of the fetch layer is reduced to one ErrorCategory; whether a
failure is retried depends on the category alone.
"""

import errno
import random
import socket
from enum import Enum
from typing import Optional

import httpx

from writeup_hunter.exceptions import WriteupHunterError


class ErrorCategory(str, Enum):
    """Closed set of fetch failure categories."""

    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    DNS_FAILURE = "dns_failure"
    DNS_NOT_FOUND = "dns_not_found"
    CONNECTION_RESET = "connection_reset"
    INVALID_URL = "invalid_url"
    OTHER = "other"


RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.TIMEOUT,
        ErrorCategory.SERVER_ERROR,
        ErrorCategory.RATE_LIMITED,
        ErrorCategory.DNS_FAILURE,
        ErrorCategory.CONNECTION_RESET,
    }
)

_DNS_NOT_FOUND_CODES = frozenset(
    code
    for code in (getattr(socket, "EAI_NONAME", None), getattr(socket, "EAI_NODATA", None))
    if code is not None
)

_CONNECTION_ERRNOS = frozenset(
    {errno.ECONNREFUSED, errno.ECONNRESET, errno.ECONNABORTED, errno.EPIPE}
)


def is_retryable(category: ErrorCategory) -> bool:
    """Return True if a failure of this category is worth another attempt."""
    return category in RETRYABLE_CATEGORIES


def classify_status(status_code: int) -> Optional[ErrorCategory]:
    """Map an HTTP status code to an error category (None for success codes)."""
    if status_code == 429:
        return ErrorCategory.RATE_LIMITED
    if status_code >= 500:
        return ErrorCategory.SERVER_ERROR
    if status_code >= 400:
        return ErrorCategory.CLIENT_ERROR
    if status_code < 200 or status_code >= 300:
        return ErrorCategory.OTHER
    return None


def _exception_chain(exc: BaseException):
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _classify_os_error(exc: BaseException) -> Optional[ErrorCategory]:
    for cause in _exception_chain(exc):
        if isinstance(cause, socket.gaierror):
            if cause.errno in _DNS_NOT_FOUND_CODES:
                return ErrorCategory.DNS_NOT_FOUND
            return ErrorCategory.DNS_FAILURE
        if isinstance(cause, (TimeoutError, socket.timeout)):
            return ErrorCategory.TIMEOUT
        if isinstance(cause, (ConnectionError, EOFError)):
            return ErrorCategory.CONNECTION_RESET
        if isinstance(cause, OSError) and cause.errno in _CONNECTION_ERRNOS:
            return ErrorCategory.CONNECTION_RESET
    return None


def classify_exception(exc: BaseException) -> ErrorCategory:
    """Reduce an exception raised while fetching to an ErrorCategory.

    Args:
        exc: Exception raised by the HTTP client or the feed parser

    Returns:
        Matching ErrorCategory, OTHER when nothing more specific applies
    """
    if isinstance(exc, FetchError):
        return exc.category

    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status(exc.response.status_code) or ErrorCategory.OTHER

    # ConnectTimeout also covers TLS handshake timeouts
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return ErrorCategory.INVALID_URL

    if isinstance(exc, httpx.TooManyRedirects):
        return ErrorCategory.OTHER

    if isinstance(exc, httpx.NetworkError):
        # Connect/read/write failures: resolve DNS first, everything else is
        # a dropped or refused connection
        return _classify_os_error(exc) or ErrorCategory.CONNECTION_RESET

    if isinstance(exc, httpx.RemoteProtocolError):
        # Server closed the connection without a complete response
        return ErrorCategory.CONNECTION_RESET

    if isinstance(exc, httpx.TransportError):
        return _classify_os_error(exc) or ErrorCategory.OTHER

    return _classify_os_error(exc) or ErrorCategory.OTHER


def backoff_delay(
    attempt: int,
    base_delay: float,
    jitter: float,
    max_delay: float,
    rng: Optional[random.Random] = None,
) -> float:
    """Exponential backoff delay with jitter for a 0-indexed attempt.

    The result lies in [base * 2**attempt, base * 2**attempt + jitter],
    capped at max_delay.
    """
    rng = rng or random
    delay = base_delay * (2 ** attempt)
    if jitter > 0:
        delay += rng.uniform(0, jitter)
    return min(delay, max_delay)


class FetchError(WriteupHunterError):
    """A feed could not be fetched or parsed."""

    def __init__(
        self,
        message: str,
        url: str,
        category: ErrorCategory = ErrorCategory.OTHER,
        status_code: Optional[int] = None,
        attempts: int = 1,
    ):
        super().__init__(
            message,
            context={
                "url": url,
                "category": category.value,
                "status_code": status_code,
                "attempts": attempts,
            },
        )
        self.url = url
        self.category = category
        self.status_code = status_code
        self.attempts = attempts

    @property
    def retryable(self) -> bool:
        return is_retryable(self.category)

    @classmethod
    def from_exception(cls, url: str, exc: BaseException) -> "FetchError":
        """Wrap an HTTP client or parser exception."""
        status_code = None
        if isinstance(exc, httpx.HTTPStatusError):
            status_code = exc.response.status_code
        category = classify_exception(exc)
        return cls(
            f"{type(exc).__name__}: {exc}",
            url=url,
            category=category,
            status_code=status_code,
        )

    def __str__(self) -> str:
        return self.message
