"""Shared fixtures for writeup hunter tests."""

import logging
import socket
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import httpx
import pytest

import writeup_hunter.config as config_module
from writeup_hunter.logger import InterceptHandler


@pytest.fixture(autouse=True)
def reset_config(monkeypatch):
    """Give every test a fresh global config without file logging or leftover log interception."""
    monkeypatch.setenv("LOG_FILE_ENABLED", "false")
    config_module._config = None
    yield
    config_module._config = None
    for handler in list(logging.root.handlers):
        if isinstance(handler, InterceptHandler):
            logging.root.removeHandler(handler)


class FixedRandom:
    """Random stand-in whose uniform() always returns one end of the range."""

    def __init__(self, upper: bool = False):
        self.upper = upper

    def uniform(self, a, b):
        return b if self.upper else a


class FakeClock:
    """Monotonic clock that only advances when slept on."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def now():
    return datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def make_response(status_code=200, content=b"", json_data=None):
    """Build a mocked httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.headers = {}
    if json_data is not None:
        response.json.return_value = json_data
    return response


def make_client(mock_client_class, responses=None, side_effect=None):
    """Wire a patched httpx.Client class to return scripted responses."""
    mock_client = MagicMock()
    if side_effect is not None:
        mock_client.get.side_effect = side_effect
    elif isinstance(responses, list):
        mock_client.get.side_effect = responses
    else:
        mock_client.get.return_value = responses
    mock_client.__enter__ = Mock(return_value=mock_client)
    mock_client.__exit__ = Mock(return_value=False)
    mock_client_class.return_value = mock_client
    return mock_client


def chained(exc: Exception, cause: BaseException) -> Exception:
    """Return exc with cause attached the way ``raise exc from cause`` does."""
    try:
        raise exc from cause
    except Exception as e:
        return e


def dns_error(code: int) -> Exception:
    return chained(
        httpx.ConnectError("[Errno -2] Name or service not known"),
        socket.gaierror(code, "Name or service not known"),
    )
