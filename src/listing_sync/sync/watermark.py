"""
Watermark Tracker

Derives the incremental sync starting point from persisted listings.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import sessionmaker

from src.listing_sync.db.repository import ListingRepository
from src.listing_sync.db.session import session_scope
from src.listing_sync.sync.modes import SyncMode
from src.listing_sync.utils.logger import get_logger

logger = get_logger(__name__)


class WatermarkTracker:
    """Reads the newest persisted modification timestamp, once per run."""

    def __init__(self, session_factory: sessionmaker, repository: Optional[ListingRepository] = None):
        self.session_factory = session_factory
        self.repository = repository or ListingRepository()

    def get_watermark(self) -> Optional[datetime]:
        """
        Latest modification timestamp in the store.

        Returns:
            Aware UTC datetime, or None when the store has no timestamped rows
        """
        with session_scope(self.session_factory) as session:
            watermark = self.repository.get_latest_modification_timestamp(session)

        logger.info("watermark_read", watermark=watermark.isoformat() if watermark else None)
        return watermark

    @staticmethod
    def should_refuse(mode: SyncMode, watermark: Optional[datetime]) -> bool:
        """
        True when an incremental run has no watermark to start from.

        Without one the run would pull the whole feed; that must be asked
        for explicitly with a backfill.
        """
        return mode is SyncMode.INCREMENTAL and watermark is None
