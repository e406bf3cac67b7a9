"""
Sync Report Model

Summary of one sync run, logged at the end of the run.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from src.listing_sync.sync.modes import SyncMode, SyncOutcome


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncReport(BaseModel):
    """
    Counters and terminal state of a sync run.

    Attributes:
        mode: Incremental or backfill
        outcome: done, refused or fatal (None while running)
        watermark: Watermark read at start of run
        pages_fetched: Listing pages fetched
        records_seen: Listings received from the feed
        records_upserted: Listings written to the store
        records_failed: Listings skipped after upsert retries
        media_failures: Media lookups that degraded to no images
        error_message: Cause of a fatal outcome
    """

    mode: SyncMode
    outcome: Optional[SyncOutcome] = None
    watermark: Optional[datetime] = None
    pages_fetched: int = Field(0, ge=0)
    records_seen: int = Field(0, ge=0)
    records_upserted: int = Field(0, ge=0)
    records_failed: int = Field(0, ge=0)
    media_failures: int = Field(0, ge=0)
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def exit_code(self) -> int:
        """Process exit status: 1 only for a fatal run."""
        return 1 if self.outcome is SyncOutcome.FATAL else 0

    def finish(self, outcome: SyncOutcome, error_message: Optional[str] = None) -> "SyncReport":
        self.outcome = outcome
        self.error_message = error_message
        self.finished_at = utc_now()
        return self

    def to_log_fields(self) -> dict:
        """Flat dict for structured logging."""
        return self.model_dump(mode="json")
