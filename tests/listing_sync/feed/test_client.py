"""
Unit tests for the IDX feed client
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from src.listing_sync.exceptions import AuthenticationFailure, NetworkFailure
from src.listing_sync.feed.client import FeedClient, encode_filter
from tests.listing_sync.fakes import FEED_URL, make_response


def build_client(settings, responses, sleep=None):
    """Client whose session returns (or raises) the given items in order."""
    session = MagicMock()
    session.get.side_effect = responses
    client = FeedClient(settings, session=session, sleep=sleep or (lambda _: None))
    return client, session


class TestFetch:
    """Tests for the retrying fetch"""

    def test_success_on_first_attempt(self, settings):
        """Test that a 200 response is returned without retries"""
        client, session = build_client(settings, [make_response(200, {"value": []})])

        response = client.fetch(f"{FEED_URL}/Property")

        assert response.status_code == 200
        assert session.get.call_count == 1

    def test_sends_bearer_token_and_accept_header(self, settings):
        """Test that every request carries auth and JSON accept headers"""
        client, session = build_client(settings, [make_response(200, {})])

        client.fetch(f"{FEED_URL}/")

        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer test-key"
        assert headers["Accept"] == "application/json"
        assert session.get.call_args.kwargs["timeout"] == settings.request_timeout_seconds

    def test_retries_non_2xx_with_linear_backoff(self, settings, no_sleep):
        """Test that 5xx responses are retried with delays 1x, 2x, 3x"""
        sleep, delays = no_sleep
        settings = settings.model_copy(update={"fetch_backoff_seconds": 1.0})
        client, session = build_client(
            settings,
            [make_response(500), make_response(503), make_response(429), make_response(200, {})],
            sleep=sleep,
        )

        response = client.fetch(f"{FEED_URL}/Property")

        assert response.status_code == 200
        assert session.get.call_count == 4
        assert delays == [1.0, 2.0, 3.0]

    def test_retries_transport_errors(self, settings):
        """Test that connection errors are retried like bad statuses"""
        client, session = build_client(
            settings,
            [requests.ConnectionError("reset"), requests.Timeout("slow"), make_response(200, {})],
        )

        assert client.fetch(f"{FEED_URL}/Property").status_code == 200
        assert session.get.call_count == 3

    def test_exhausted_retries_raise_network_failure(self, settings):
        """Test that the final error is surfaced after 1 + 3 attempts"""
        client, session = build_client(settings, [make_response(502)] * 4)

        with pytest.raises(NetworkFailure) as exc_info:
            client.fetch(f"{FEED_URL}/Property")

        assert session.get.call_count == 4
        assert exc_info.value.attempts == 4
        assert exc_info.value.url == f"{FEED_URL}/Property"
        assert isinstance(exc_info.value.__cause__, requests.HTTPError)
        assert "502" in str(exc_info.value)

    def test_logs_each_failed_attempt(self, settings, monkeypatch):
        """Test that retries are logged with URL and error"""
        logger = MagicMock()
        monkeypatch.setattr("src.listing_sync.feed.client.logger", logger)
        client, _ = build_client(settings, [make_response(500), make_response(200, {})])

        client.fetch(f"{FEED_URL}/Property")

        logger.warning.assert_called_once()
        kwargs = logger.warning.call_args.kwargs
        assert kwargs["url"] == f"{FEED_URL}/Property"
        assert "500" in kwargs["error"]
        assert kwargs["attempt"] == 1


class TestCheckAuth:
    """Tests for the auth smoke-test"""

    def test_auth_ok(self, settings):
        """Test that a 200 from the service root passes"""
        client, session = build_client(settings, [make_response(200, {})])

        assert client.check_auth() == 200
        assert session.get.call_args.args[0] == f"{FEED_URL}/"

    def test_auth_rejected(self, settings):
        """Test that a persistent 401 becomes an AuthenticationFailure"""
        client, _ = build_client(settings, [make_response(401)] * 4)

        with pytest.raises(AuthenticationFailure):
            client.check_auth()

    def test_auth_non_200_success_status(self, settings):
        """Test that a 2xx other than 200 is still rejected"""
        client, _ = build_client(settings, [make_response(204, {})])

        with pytest.raises(AuthenticationFailure, match="204"):
            client.check_auth()


class TestUrls:
    """Tests for request URL construction"""

    def test_listings_url_without_watermark(self, settings):
        """Test the page window parameters"""
        client, _ = build_client(settings, [])

        url = client.listings_url(top=100, skip=200)

        assert url == f"{FEED_URL}/Property?$top=100&$skip=200"

    def test_listings_url_with_watermark(self, settings):
        """Test the greater-or-equal timestamp filter"""
        client, _ = build_client(settings, [])
        watermark = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        url = client.listings_url(top=100, skip=0, watermark=watermark)

        query = parse_qs(urlsplit(url).query)
        assert query["$filter"] == ["ModificationTimestamp ge 2024-05-01T12:00:00Z"]
        assert "%20ge%20" in url

    def test_media_url(self, settings):
        """Test the media lookup filter for one listing"""
        client, _ = build_client(settings, [])

        url = client.media_url("X12345")

        query = parse_qs(urlsplit(url).query)
        assert url.startswith(f"{FEED_URL}/Media?$select=MediaURL&$filter=")
        assert query["$filter"] == ["ResourceName eq 'Property' and ResourceRecordKey eq 'X12345'"]

    def test_media_url_escapes_quotes(self, settings):
        """Test that quotes inside the key are doubled for OData"""
        client, _ = build_client(settings, [])

        query = parse_qs(urlsplit(client.media_url("O'NEIL")).query)

        assert query["$filter"][0].endswith("ResourceRecordKey eq 'O''NEIL'")

    def test_encode_filter_matches_uri_component_encoding(self):
        """Test that quotes and parentheses stay literal"""
        assert encode_filter("a eq 'b' and (c)") == "a%20eq%20'b'%20and%20(c)"


class TestPayloads:
    """Tests for listing and media payload handling"""

    def test_fetch_listings_returns_value_items(self, settings):
        """Test that the OData value array is returned"""
        items = [{"ListingKey": "A"}, {"ListingKey": "B"}]
        client, _ = build_client(settings, [make_response(200, {"value": items})])

        assert client.fetch_listings(top=100, skip=0) == items

    def test_missing_value_is_empty(self, settings):
        """Test that a body without value yields no items"""
        client, _ = build_client(settings, [make_response(200, {"@odata.context": "x"})])

        assert client.fetch_listings(top=100, skip=0) == []

    def test_invalid_json_is_network_failure(self, settings):
        """Test that an undecodable body is reported as a NetworkFailure"""
        response = make_response(200)
        response._content = b"<html>gateway</html>"
        client, _ = build_client(settings, [response])

        with pytest.raises(NetworkFailure, match="Invalid JSON"):
            client.fetch_listings(top=100, skip=0)

    def test_fetch_media_returns_assets(self, settings):
        """Test that media assets are returned as dicts"""
        payload = {"value": [{"MediaURL": "https://img/1.jpg"}, "junk", {"MediaURL": "https://img/2.jpg"}]}
        client, _ = build_client(settings, [make_response(200, payload)])

        assets = client.fetch_media("X1")

        assert assets == [{"MediaURL": "https://img/1.jpg"}, {"MediaURL": "https://img/2.jpg"}]
