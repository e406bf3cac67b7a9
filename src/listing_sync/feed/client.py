"""
IDX Feed Client

Resilient HTTP access to the RESO/OData listing feed: bearer-token auth,
linear-backoff retries, listing pages and per-listing media lookups.
"""
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from config.settings import Settings
from src.listing_sync.exceptions import AuthenticationFailure, NetworkFailure
from src.listing_sync.utils.logger import get_logger
from src.listing_sync.utils.retry import call_with_retry
from src.listing_sync.utils.timestamps import to_odata_literal

logger = get_logger(__name__)

# Characters encodeURIComponent leaves untouched besides the RFC 3986 unreserved set
_URI_COMPONENT_SAFE = "!'()*"


def encode_filter(expression: str) -> str:
    """Percent-encode an OData $filter expression for the query string."""
    return quote(expression, safe=_URI_COMPONENT_SAFE)


class FeedClient:
    """
    Client for the IDX feed.

    Every request goes through ``fetch``, which retries transport errors and
    non-2xx statuses with a linear backoff before giving up.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the feed client.

        Args:
            settings: Application settings (feed URL, key, retry policy)
            session: Override the HTTP session (for testing)
            sleep: Override the backoff sleep (for testing)
        """
        self.base_url = settings.feed_base_url
        self.listing_resource = settings.listing_resource
        self.media_resource = settings.media_resource
        self.modification_field = settings.modification_field
        self.timeout = settings.request_timeout_seconds
        self.max_retries = settings.fetch_max_retries
        self.backoff_seconds = settings.fetch_backoff_seconds
        self.headers = {
            "Authorization": f"Bearer {settings.idx_api_key}",
            "Accept": "application/json",
        }
        self.session = session or requests.Session()
        self.sleep = sleep
        logger.info("feed_client_initialized", base_url=self.base_url)

    def fetch(self, url: str) -> requests.Response:
        """
        GET a feed URL, retrying on failure.

        Args:
            url: Fully built request URL

        Returns:
            The successful response

        Raises:
            NetworkFailure: if every attempt failed
        """
        attempts = self.max_retries + 1

        def attempt_request() -> requests.Response:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            return response

        def log_retry(attempt: int, error: BaseException) -> None:
            logger.warning(
                "feed_request_retry",
                url=url,
                error=str(error),
                attempt=attempt,
                max_retries=self.max_retries,
            )

        try:
            return call_with_retry(
                attempt_request,
                attempts=attempts,
                delay=self.backoff_seconds,
                retry_on=(requests.RequestException,),
                on_retry=log_retry,
                sleep=self.sleep,
            )
        except requests.RequestException as e:
            logger.error(
                "feed_request_failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                attempts=attempts,
            )
            raise NetworkFailure(url, attempts, str(e)) from e

    def check_auth(self) -> int:
        """
        Smoke-test the credential against the service root.

        Returns:
            HTTP status code (always 200)

        Raises:
            AuthenticationFailure: if the root cannot be fetched or is not 200
        """
        url = f"{self.base_url}/"
        try:
            response = self.fetch(url)
        except NetworkFailure as e:
            raise AuthenticationFailure(f"Auth check failed: {e}") from e

        logger.info("auth_check_status", status_code=response.status_code)
        if response.status_code != 200:
            raise AuthenticationFailure(f"Auth check returned HTTP {response.status_code}")
        return response.status_code

    def listings_url(self, top: int, skip: int, watermark: Optional[datetime] = None) -> str:
        """Build the listing page URL, filtered by watermark when one is given."""
        url = f"{self.base_url}/{self.listing_resource}?$top={top}&$skip={skip}"
        if watermark is not None:
            expression = f"{self.modification_field} ge {to_odata_literal(watermark)}"
            url += f"&$filter={encode_filter(expression)}"
        return url

    def media_url(self, listing_key: str) -> str:
        """Build the media lookup URL for one listing."""
        key = str(listing_key).replace("'", "''")
        expression = (
            f"ResourceName eq '{self.listing_resource}' and ResourceRecordKey eq '{key}'"
        )
        return f"{self.base_url}/{self.media_resource}?$select=MediaURL&$filter={encode_filter(expression)}"

    def fetch_listings(self, top: int, skip: int, watermark: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Fetch one page of listings.

        Args:
            top: Page size
            skip: Number of records to skip
            watermark: Lower bound on the modification timestamp (inclusive)

        Returns:
            Raw listing dicts

        Raises:
            NetworkFailure: if the page cannot be fetched or decoded
        """
        url = self.listings_url(top, skip, watermark)
        items = self._read_items(url, self.fetch(url))
        logger.info("listing_page_fetched", skip=skip, top=top, count=len(items))
        return items

    def fetch_media(self, listing_key: str) -> List[Dict[str, Any]]:
        """
        Fetch the media assets attached to a listing.

        Raises:
            NetworkFailure: if the lookup cannot be fetched or decoded
        """
        url = self.media_url(listing_key)
        return [item for item in self._read_items(url, self.fetch(url)) if isinstance(item, dict)]

    def _read_items(self, url: str, response: requests.Response) -> List[Any]:
        """Extract the ``value`` array from an OData response body."""
        try:
            body = response.json()
        except ValueError as e:
            raise NetworkFailure(url, 1, f"Invalid JSON body: {e}") from e

        if not isinstance(body, dict):
            return []
        items = body.get("value")
        return items if isinstance(items, list) else []
