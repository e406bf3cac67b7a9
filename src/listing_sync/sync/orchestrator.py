"""
Sync Orchestrator

One run: auth check -> watermark read -> paginate -> (media -> normalize ->
upsert per listing) -> report. Listings are processed strictly one at a time,
in the order the feed returns them.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.listing_sync.exceptions import AuthenticationFailure, NetworkFailure
from src.listing_sync.feed.client import FeedClient
from src.listing_sync.models.raw_listing import RawListing
from src.listing_sync.models.sync_report import SyncReport
from src.listing_sync.sync.modes import SyncMode, SyncOutcome
from src.listing_sync.sync.pagination import PageResult, PaginationDriver
from src.listing_sync.sync.sink import UpsertSink
from src.listing_sync.sync.watermark import WatermarkTracker
from src.listing_sync.transformers.listing_normalizer import ListingNormalizer
from src.listing_sync.utils.logger import get_logger

logger = get_logger(__name__)


class SyncOrchestrator:
    """Wires the feed client, watermark tracker, normalizer and sink into a run."""

    def __init__(
        self,
        client: FeedClient,
        watermark_tracker: WatermarkTracker,
        sink: UpsertSink,
        normalizer: Optional[ListingNormalizer] = None,
        page_size: int = 100,
    ):
        self.client = client
        self.watermark_tracker = watermark_tracker
        self.sink = sink
        self.normalizer = normalizer or ListingNormalizer()
        self.driver = PaginationDriver(client, page_size=page_size)

    def run(
        self,
        mode: SyncMode,
        start_page: Optional[int] = None,
        end_page: Optional[int] = None,
    ) -> SyncReport:
        """
        Execute one sync run.

        Args:
            mode: INCREMENTAL or BACKFILL
            start_page: First page (backfill only)
            end_page: Last page, inclusive (backfill only)

        Returns:
            SyncReport with the terminal outcome; never raises for
            authentication, listing fetch or store failures
        """
        report = SyncReport(mode=mode)
        logger.info("sync_run_started", mode=mode.value, start_page=start_page, end_page=end_page)

        try:
            self.client.check_auth()
        except AuthenticationFailure as e:
            logger.error("sync_auth_failed", error=str(e))
            return self._finish(report, SyncOutcome.FATAL, str(e))

        try:
            watermark = self.watermark_tracker.get_watermark()
        except SQLAlchemyError as e:
            logger.error("sync_watermark_read_failed", error=str(e), error_type=type(e).__name__)
            return self._finish(report, SyncOutcome.FATAL, str(e))
        report.watermark = watermark

        if WatermarkTracker.should_refuse(mode, watermark):
            logger.warning(
                "sync_refused_no_watermark",
                reason="store has no modification_timestamp; run a backfill first",
            )
            return self._finish(report, SyncOutcome.REFUSED)

        try:
            for page in self.driver.iter_pages(mode, start_page, end_page, watermark):
                report.pages_fetched += 1
                self._process_page(page, report)
        except NetworkFailure as e:
            logger.error("sync_listing_fetch_failed", url=e.url, error=str(e))
            return self._finish(report, SyncOutcome.FATAL, str(e))

        return self._finish(report, SyncOutcome.DONE)

    def _process_page(self, page: PageResult, report: SyncReport) -> None:
        logger.info(
            "processing_page",
            page=page.window.page,
            skip=page.window.offset,
            count=len(page.items),
        )
        for item in page.items:
            report.records_seen += 1
            listing = RawListing(item)
            media_assets = self._fetch_media(listing, report)
            record = self.normalizer.normalize(listing, media_assets)
            if self.sink.upsert(record):
                report.records_upserted += 1
            else:
                report.records_failed += 1

    def _fetch_media(self, listing: RawListing, report: SyncReport) -> List[Dict[str, Any]]:
        """Media assets for one listing; any failure degrades to no images."""
        if listing.key is None:
            return []
        try:
            return self.client.fetch_media(listing.key)
        except NetworkFailure as e:
            report.media_failures += 1
            logger.warning("media_fetch_failed", mls_id=listing.key, error=str(e))
            return []

    def _finish(self, report: SyncReport, outcome: SyncOutcome, error: Optional[str] = None) -> SyncReport:
        report.finish(outcome, error)
        log = logger.error if outcome is SyncOutcome.FATAL else logger.info
        log("sync_run_finished", **report.to_log_fields())
        return report
