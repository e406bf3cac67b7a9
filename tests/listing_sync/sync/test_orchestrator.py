"""
Tests for SyncOrchestrator

Runs the full pipeline against a fake feed session and an in-memory store.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy.exc import OperationalError

from src.listing_sync.db.models import Listing
from src.listing_sync.db.repository import ListingRepository
from src.listing_sync.db.session import session_scope
from src.listing_sync.feed.client import FeedClient
from src.listing_sync.sync.modes import SyncMode, SyncOutcome
from src.listing_sync.sync.orchestrator import SyncOrchestrator
from src.listing_sync.sync.sink import UpsertSink
from src.listing_sync.sync.watermark import WatermarkTracker
from tests.listing_sync.fakes import FakeFeedSession, make_listing, make_page, make_response

WATERMARK = datetime(2024, 4, 1, tzinfo=timezone.utc)


@pytest.fixture
def build(settings, session_factory):
    """Factory for an orchestrator wired to a fake feed session."""

    def _build(feed_session):
        client = FeedClient(settings, session=feed_session, sleep=lambda _: None)
        return SyncOrchestrator(
            client=client,
            watermark_tracker=WatermarkTracker(session_factory),
            sink=UpsertSink(session_factory, retry_delay=0, sleep=lambda _: None),
            page_size=100,
        )

    return _build


@pytest.fixture
def seeded(session_factory):
    """Store with one listing carrying a watermark."""
    with session_scope(session_factory) as session:
        session.add(Listing(mls_id="SEED", modification_timestamp=WATERMARK))


def row_count(session_factory):
    with session_scope(session_factory) as session:
        return ListingRepository().count(session)


class TestIncrementalRun:
    """Tests for incremental runs"""

    def test_refuses_without_watermark(self, build, session_factory):
        """Test that an empty store refuses and touches neither feed nor store"""
        feed = FakeFeedSession(pages={1: make_page(100)})

        report = build(feed).run(SyncMode.INCREMENTAL)

        assert report.outcome is SyncOutcome.REFUSED
        assert report.exit_code == 0
        assert feed.listing_calls == []
        assert feed.media_calls == []
        assert report.records_upserted == 0
        assert row_count(session_factory) == 0

    def test_syncs_until_short_page(self, build, session_factory, seeded):
        """Test that 100 + 100 + 37 listings are all upserted"""
        feed = FakeFeedSession(pages={1: make_page(100), 2: make_page(100, start=100), 3: make_page(37, start=200)})

        report = build(feed).run(SyncMode.INCREMENTAL)

        assert report.outcome is SyncOutcome.DONE
        assert report.exit_code == 0
        assert report.pages_fetched == 3
        assert report.records_seen == 237
        assert report.records_upserted == 237
        assert report.watermark == WATERMARK
        assert len(feed.listing_calls) == 3
        assert len(feed.media_calls) == 237
        assert row_count(session_factory) == 238

    def test_requests_use_watermark_filter(self, build, seeded):
        """Test that listing pages are filtered by the stored watermark"""
        feed = FakeFeedSession(pages={1: make_page(2)})

        build(feed).run(SyncMode.INCREMENTAL)

        query = parse_qs(urlsplit(feed.listing_calls[0]).query)
        assert query["$filter"] == ["ModificationTimestamp ge 2024-04-01T00:00:00Z"]

    def test_media_attached_to_record(self, build, session_factory, seeded):
        """Test that media URLs end up on the stored listing"""
        feed = FakeFeedSession(
            pages={1: [make_listing("M1")]},
            media={"M1": ["https://img/1.jpg", "https://img/2.jpg"]},
        )

        build(feed).run(SyncMode.INCREMENTAL)

        with session_scope(session_factory) as session:
            assert ListingRepository().get_by_mls_id(session, "M1").image_urls == [
                "https://img/1.jpg",
                "https://img/2.jpg",
            ]

    def test_padded_key_stored_and_looked_up_the_same(self, build, session_factory, seeded):
        """Test that surrounding whitespace in ListingKey is dropped for both row and media"""
        feed = FakeFeedSession(
            pages={1: [make_listing(" K1 ")]},
            media={"K1": ["https://img/k1.jpg"]},
        )

        build(feed).run(SyncMode.INCREMENTAL)

        media_query = parse_qs(urlsplit(feed.media_calls[0]).query)
        assert media_query["$filter"][0].endswith("ResourceRecordKey eq 'K1'")
        with session_scope(session_factory) as session:
            listing = ListingRepository().get_by_mls_id(session, "K1")
            assert listing is not None
            assert listing.image_urls == ["https://img/k1.jpg"]

    def test_media_failure_degrades(self, build, session_factory, seeded):
        """Test that a failed media lookup still upserts the listing without images"""
        feed = FakeFeedSession(
            pages={1: [make_listing("M1"), make_listing("M2")]},
            media={"M2": ["https://img/2.jpg"]},
            media_error=lambda key: key == "M1",
        )

        report = build(feed).run(SyncMode.INCREMENTAL)

        assert report.outcome is SyncOutcome.DONE
        assert report.media_failures == 1
        assert report.records_upserted == 2
        with session_scope(session_factory) as session:
            assert ListingRepository().get_by_mls_id(session, "M1").image_urls == []

    def test_listing_without_key_is_skipped(self, build, session_factory, seeded):
        """Test that a keyless listing counts as failed and the rest continue"""
        feed = FakeFeedSession(pages={1: [make_listing("A"), {"City": "Nowhere"}, make_listing("B")]})

        report = build(feed).run(SyncMode.INCREMENTAL)

        assert report.outcome is SyncOutcome.DONE
        assert report.records_upserted == 2
        assert report.records_failed == 1
        assert len(feed.media_calls) == 2


class TestBackfillRun:
    """Tests for backfill runs"""

    def test_backfill_on_empty_store(self, build, session_factory):
        """Test that a backfill runs without a watermark over the exact range"""
        feed = FakeFeedSession(pages={5: make_page(100), 6: make_page(100, start=100), 7: make_page(5, start=200)})

        report = build(feed).run(SyncMode.BACKFILL, start_page=5, end_page=7)

        assert report.outcome is SyncOutcome.DONE
        assert report.pages_fetched == 3
        assert report.records_upserted == 205
        assert all("$filter" not in url for url in feed.listing_calls)
        assert row_count(session_factory) == 205


class TestFatalRuns:
    """Tests for runs that end FATAL"""

    def test_auth_failure(self, build):
        """Test that a rejected credential stops the run before any page fetch"""
        feed = FakeFeedSession(pages={1: make_page(10)}, root_status=401)

        report = build(feed).run(SyncMode.BACKFILL, start_page=1, end_page=1)

        assert report.outcome is SyncOutcome.FATAL
        assert report.exit_code == 1
        assert feed.listing_calls == []
        assert "Auth check failed" in report.error_message

    def test_listing_page_failure(self, build, session_factory):
        """Test that a page that never loads ends the run, keeping earlier writes"""
        feed = FakeFeedSession(pages={1: make_page(100)})
        original_get = feed.get

        def get(url, headers=None, timeout=None):
            if "$skip=100" in url:
                feed.calls.append(url)
                return make_response(500, {}, url)
            return original_get(url, headers=headers, timeout=timeout)

        feed.get = get

        report = build(feed).run(SyncMode.BACKFILL, start_page=1, end_page=2)

        assert report.outcome is SyncOutcome.FATAL
        assert report.exit_code == 1
        assert report.records_upserted == 100
        assert row_count(session_factory) == 100

    def test_watermark_read_failure(self, settings, session_factory):
        """Test that a store error while reading the watermark is fatal"""
        tracker = MagicMock()
        tracker.get_watermark.side_effect = OperationalError("SELECT", {}, Exception("no such table"))
        orchestrator = SyncOrchestrator(
            client=FeedClient(settings, session=FakeFeedSession(), sleep=lambda _: None),
            watermark_tracker=tracker,
            sink=UpsertSink(session_factory),
        )

        report = orchestrator.run(SyncMode.INCREMENTAL)

        assert report.outcome is SyncOutcome.FATAL
        assert report.exit_code == 1
