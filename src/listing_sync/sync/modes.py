"""
Sync modes and run outcomes.
"""
from enum import Enum


class SyncMode(str, Enum):
    """How the listing pages are walked."""

    INCREMENTAL = "incremental"  # from page 1 until the first short page, filtered by watermark
    BACKFILL = "backfill"  # explicit page range, no time filter

    @classmethod
    def from_flag(cls, full_backfill: bool) -> "SyncMode":
        return cls.BACKFILL if full_backfill else cls.INCREMENTAL


class SyncOutcome(str, Enum):
    """Terminal state of a run."""

    DONE = "done"
    REFUSED = "refused"
    FATAL = "fatal"
