"""
Pagination Driver

Walks the listing resource page by page. Backfill runs cover a fixed,
caller-supplied page range; incremental runs keep going until the feed
returns a short page.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from src.listing_sync.feed.client import FeedClient
from src.listing_sync.sync.modes import SyncMode
from src.listing_sync.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PageWindow:
    """One fetch request: 1-based page number and page size."""

    page: int
    size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def next(self) -> "PageWindow":
        return PageWindow(page=self.page + 1, size=self.size)


@dataclass
class PageResult:
    """Items returned for one page window."""

    window: PageWindow
    items: List[Dict[str, Any]]

    @property
    def is_short(self) -> bool:
        return len(self.items) < self.window.size


class PaginationDriver:
    """Produces page results lazily through the feed client."""

    def __init__(self, client: FeedClient, page_size: int = 100):
        self.client = client
        self.page_size = page_size

    def iter_pages(
        self,
        mode: SyncMode,
        start_page: Optional[int] = None,
        end_page: Optional[int] = None,
        watermark: Optional[datetime] = None,
    ) -> Iterator[PageResult]:
        """
        Yield one PageResult per fetched page.

        Args:
            mode: INCREMENTAL or BACKFILL
            start_page: First page (backfill only)
            end_page: Last page, inclusive (backfill only)
            watermark: Lower bound for incremental fetches

        Raises:
            NetworkFailure: if a page cannot be fetched
            ValueError: if a backfill is missing its page range
        """
        if mode is SyncMode.BACKFILL:
            if start_page is None or end_page is None:
                raise ValueError("Backfill requires start_page and end_page")
            yield from self._iter_range(start_page, end_page)
        else:
            yield from self._iter_until_short(watermark)

    def _fetch(self, window: PageWindow, watermark: Optional[datetime] = None) -> PageResult:
        items = self.client.fetch_listings(top=window.size, skip=window.offset, watermark=watermark)
        return PageResult(window=window, items=items)

    def _iter_range(self, start_page: int, end_page: int) -> Iterator[PageResult]:
        """Fetch every page in [start_page, end_page], whatever their sizes."""
        logger.info("backfill_pagination_started", start_page=start_page, end_page=end_page)

        window = PageWindow(page=start_page, size=self.page_size)
        while window.page <= end_page:
            yield self._fetch(window)
            window = window.next()

    def _iter_until_short(self, watermark: Optional[datetime]) -> Iterator[PageResult]:
        """Fetch from page 1; the first page with fewer than page_size items is the last."""
        logger.info(
            "incremental_pagination_started",
            watermark=watermark.isoformat() if watermark else None,
        )

        window = PageWindow(page=1, size=self.page_size)
        while True:
            result = self._fetch(window, watermark)
            yield result
            if result.is_short:
                logger.info("incremental_pagination_complete", last_page=window.page)
                return
            window = window.next()
