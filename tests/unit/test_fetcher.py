"""Unit tests for feed fetcher."""

import socket
from unittest.mock import patch

import httpx
import pytest

from conftest import FixedRandom, dns_error, make_client, make_response
from writeup_hunter.config import FetcherConfig
from writeup_hunter.core.fetcher import FeedFetcher, create_fetcher
from writeup_hunter.core.retry import ErrorCategory, FetchError

RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Write-ups</title>
    <link>https://blog.example.com</link>
    <description>Bug bounty write-ups</description>
    <item>
      <title>SQL Injection in a login form</title>
      <link>https://blog.example.com/sqli</link>
      <description>&lt;p&gt;How I found a &lt;b&gt;blind&lt;/b&gt; SQLi&lt;/p&gt;</description>
      <pubDate>Mon, 12 Oct 2026 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Notes on recon</title>
      <link>https://blog.example.com/recon</link>
      <pubDate>Tue, 13 Oct 2026 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom write-ups</title>
  <entry>
    <title>IDOR in the billing API</title>
    <link href="https://atom.example.com/idor"/>
    <id>urn:uuid:1</id>
    <updated>2026-10-14T08:30:00Z</updated>
    <summary>Changing an id leaked invoices</summary>
  </entry>
</feed>
"""

JSON_FEED = [
    {
        "title": "Account takeover via OAuth",
        "description": "Misconfigured redirect_uri",
        "link": "https://medium.com/@hunter/ato",
        "published": "2026-10-15",
        "authors": [{"name": "hunter"}, {"name": "partner"}],
        "vulnerabilities": [{"title": "OAuth"}, {"title": "Account Takeover"}],
    },
    {"title": "No link here", "description": "", "published": "2026-10-15"},
]

FEED_URL = "https://blog.example.com/feed"
JSON_URL = "https://writeups.xyz/index.json"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fetcher(sleeps):
    return FeedFetcher(
        timeout_seconds=5,
        max_retries=3,
        base_delay=2,
        jitter=1,
        max_delay=30,
        sleep=sleeps.append,
        rng=FixedRandom(),
    )


class TestFeedFetcherInit:
    """Tests for FeedFetcher construction."""

    def test_defaults_from_config(self):
        fetcher = FeedFetcher()

        assert fetcher.timeout_seconds > 0
        assert fetcher.max_retries == 3
        assert fetcher.base_delay == 2.0
        assert fetcher.max_delay == 30.0
        assert fetcher.user_agent is not None

    def test_zero_retries_is_respected(self):
        fetcher = FeedFetcher(max_retries=0)

        assert fetcher.max_retries == 0

    def test_from_config(self):
        config = FetcherConfig(max_retries=5, base_delay_seconds=0.5, follow_redirects=False)
        fetcher = FeedFetcher.from_config(config)

        assert fetcher.max_retries == 5
        assert fetcher.base_delay == 0.5
        assert fetcher.follow_redirects is False

    def test_create_fetcher(self):
        fetcher = create_fetcher(max_retries=1)

        assert isinstance(fetcher, FeedFetcher)
        assert fetcher.max_retries == 1

    def test_json_feed_detection(self, fetcher):
        assert fetcher.is_json_feed(JSON_URL) is True
        assert fetcher.is_json_feed(FEED_URL) is False


class TestFetchRss:
    """Tests for the RSS/Atom path."""

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_fetch_rss(self, mock_client_class, fetcher):
        make_client(mock_client_class, make_response(200, RSS_FEED))

        items = fetcher.fetch(FEED_URL)

        assert [item.link for item in items] == [
            "https://blog.example.com/sqli",
            "https://blog.example.com/recon",
        ]
        first = items[0]
        assert first.title == "SQL Injection in a login form"
        assert first.description == "How I found a blind SQLi"
        assert first.published == "Mon, 12 Oct 2026 10:00:00 GMT"
        assert items[1].description == ""

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_fetch_atom(self, mock_client_class, fetcher):
        make_client(mock_client_class, make_response(200, ATOM_FEED))

        items = fetcher.fetch("https://atom.example.com/atom.xml")

        assert len(items) == 1
        assert items[0].link == "https://atom.example.com/idor"
        assert items[0].published == "2026-10-14T08:30:00Z"
        assert items[0].description == "Changing an id leaked invoices"

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_sends_user_agent(self, mock_client_class, fetcher):
        client = make_client(mock_client_class, make_response(200, RSS_FEED))

        fetcher.fetch(FEED_URL)

        _, kwargs = client.get.call_args
        assert kwargs["headers"]["User-Agent"] == fetcher.user_agent
        assert mock_client_class.call_args.kwargs["timeout"] == 5

    @patch("writeup_hunter.core.fetcher.feedparser.parse")
    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_unparseable_feed(self, mock_client_class, mock_parse, fetcher):
        make_client(mock_client_class, make_response(200, b"<<< not a feed"))
        mock_parse.return_value = {
            "bozo": 1,
            "bozo_exception": ValueError("syntax error"),
            "entries": [],
        }

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch(FEED_URL)

        assert exc_info.value.category == ErrorCategory.OTHER
        assert exc_info.value.retryable is False

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_http_error_status(self, mock_client_class, fetcher):
        make_client(mock_client_class, make_response(404))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch(FEED_URL)

        assert exc_info.value.status_code == 404
        assert exc_info.value.category == ErrorCategory.CLIENT_ERROR


class TestFetchJson:
    """Tests for the JSON write-up index path."""

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_fetch_json(self, mock_client_class, fetcher):
        make_client(mock_client_class, make_response(200, json_data=JSON_FEED))

        items = fetcher.fetch(JSON_URL)

        assert len(items) == 1
        item = items[0]
        assert item.title == "Account takeover via OAuth"
        assert item.link == "https://medium.com/@hunter/ato"
        assert item.published == "2026-10-15"
        assert item.authors == ("hunter", "partner")
        assert item.tags == ("OAuth", "Account Takeover")

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_json_not_a_list(self, mock_client_class, fetcher):
        make_client(mock_client_class, make_response(200, json_data={"items": []}))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch(JSON_URL)

        assert exc_info.value.category == ErrorCategory.OTHER

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_json_invalid_body(self, mock_client_class, fetcher):
        response = make_response(200)
        response.json.side_effect = ValueError("Expecting value")
        make_client(mock_client_class, response)

        with pytest.raises(FetchError, match="Invalid JSON feed"):
            fetcher.fetch(JSON_URL)

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_json_requires_200(self, mock_client_class, fetcher):
        make_client(mock_client_class, make_response(204))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch(JSON_URL)

        assert exc_info.value.status_code == 204
        assert exc_info.value.retryable is False


class TestFetchWithRetry:
    """Tests for retry and backoff behaviour."""

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_success_first_try(self, mock_client_class, fetcher, sleeps):
        client = make_client(mock_client_class, make_response(200, RSS_FEED))

        items = fetcher.fetch_with_retry(FEED_URL)

        assert len(items) == 2
        assert client.get.call_count == 1
        assert sleeps == []

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_server_error_is_retried(self, mock_client_class, fetcher, sleeps):
        client = make_client(
            mock_client_class,
            [make_response(503), make_response(503), make_response(200, RSS_FEED)],
        )

        items = fetcher.fetch_with_retry(FEED_URL)

        assert len(items) == 2
        assert client.get.call_count == 3
        assert sleeps == [2, 4]

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_rate_limited_is_retried(self, mock_client_class, fetcher, sleeps):
        client = make_client(
            mock_client_class,
            [make_response(429), make_response(200, RSS_FEED)],
        )

        fetcher.fetch_with_retry(FEED_URL)

        assert client.get.call_count == 2
        assert sleeps == [2]

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_not_found_is_not_retried(self, mock_client_class, fetcher, sleeps):
        client = make_client(mock_client_class, make_response(404))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_with_retry(FEED_URL)

        assert client.get.call_count == 1
        assert sleeps == []
        assert exc_info.value.attempts == 1
        assert exc_info.value.status_code == 404
        assert FEED_URL in str(exc_info.value)

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_retries_exhausted(self, mock_client_class, fetcher, sleeps):
        client = make_client(mock_client_class, make_response(500))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_with_retry(FEED_URL)

        error = exc_info.value
        assert client.get.call_count == 4
        assert error.attempts == 4
        assert error.category == ErrorCategory.SERVER_ERROR
        assert "4 attempt" in str(error)
        assert isinstance(error.__cause__, FetchError)
        # No sleep after the final attempt
        assert sleeps == [2, 4, 8]

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_backoff_is_capped(self, mock_client_class, sleeps):
        fetcher = FeedFetcher(
            max_retries=6,
            base_delay=2,
            jitter=1,
            max_delay=30,
            sleep=sleeps.append,
            rng=FixedRandom(upper=True),
        )
        make_client(mock_client_class, make_response(502))

        with pytest.raises(FetchError):
            fetcher.fetch_with_retry(FEED_URL)

        assert sleeps == [3, 5, 9, 17, 30, 30]

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_timeout_is_retried(self, mock_client_class, fetcher, sleeps):
        client = make_client(
            mock_client_class,
            side_effect=[httpx.ReadTimeout("timed out"), make_response(200, RSS_FEED)],
        )

        items = fetcher.fetch_with_retry(FEED_URL)

        assert len(items) == 2
        assert client.get.call_count == 2

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_dns_not_found_is_fatal(self, mock_client_class, fetcher, sleeps):
        client = make_client(mock_client_class, side_effect=dns_error(socket.EAI_NONAME))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_with_retry(FEED_URL)

        assert client.get.call_count == 1
        assert exc_info.value.category == ErrorCategory.DNS_NOT_FOUND

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_malformed_url_is_fatal(self, mock_client_class, fetcher, sleeps):
        client = make_client(
            mock_client_class,
            side_effect=httpx.UnsupportedProtocol("Request URL is missing an 'http://' or 'https://' protocol."),
        )

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_with_retry("not-a-url")

        assert client.get.call_count == 1
        assert exc_info.value.category == ErrorCategory.INVALID_URL
        assert sleeps == []

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_zero_retries(self, mock_client_class, sleeps):
        fetcher = FeedFetcher(max_retries=0, sleep=sleeps.append)
        client = make_client(mock_client_class, make_response(503))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_with_retry(FEED_URL)

        assert client.get.call_count == 1
        assert exc_info.value.attempts == 1
        assert sleeps == []


class TestMalformedEntries:
    """Tests for entries that cannot be normalized."""

    @patch("writeup_hunter.core.fetcher.json_record_to_item")
    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_json_conversion_error(self, mock_client_class, mock_convert, fetcher, sleeps):
        make_client(mock_client_class, make_response(200, json_data=JSON_FEED))
        mock_convert.side_effect = TypeError("argument of type 'int' is not iterable")

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch_with_retry(JSON_URL)

        assert exc_info.value.category == ErrorCategory.OTHER
        assert isinstance(exc_info.value.__cause__.__cause__, TypeError)
        assert sleeps == []

    @patch("writeup_hunter.core.fetcher.entry_to_item")
    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_feed_conversion_error(self, mock_client_class, mock_convert, fetcher):
        make_client(mock_client_class, make_response(200, RSS_FEED))
        mock_convert.side_effect = AttributeError("'int' object has no attribute 'strip'")

        with pytest.raises(FetchError, match="Malformed entry"):
            fetcher.fetch(FEED_URL)

    @patch("writeup_hunter.core.fetcher.httpx.Client")
    def test_badly_typed_json_record_is_kept(self, mock_client_class, fetcher):
        records = [{"title": "XSS", "link": "https://x/a", "description": 5, "authors": 3}]
        make_client(mock_client_class, make_response(200, json_data=records))

        items = fetcher.fetch(JSON_URL)

        assert [(item.link, item.description) for item in items] == [("https://x/a", "5")]
