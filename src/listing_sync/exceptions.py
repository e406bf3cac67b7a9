"""
Listing Sync - Error Taxonomy

RETRYABLE vs FATAL:
- ConfigurationError: pre-flight, the process exits before any I/O
- AuthenticationFailure: the feed rejected the smoke-test, the run stops
- NetworkFailure: raised after the fetch retry budget is spent; fatal for
  listing pages, degraded to an empty result for media lookups
- PersistFailure: raised after the upsert retry budget is spent; the record
  is skipped and the run continues
"""
from typing import Optional


class ListingSyncError(Exception):
    """Base class for all sync errors."""


class ConfigurationError(ListingSyncError):
    """Required configuration is missing or invalid."""


class AuthenticationFailure(ListingSyncError):
    """The feed did not accept the configured credential."""


class NetworkFailure(ListingSyncError):
    """A feed request failed on every attempt."""

    def __init__(self, url: str, attempts: int, message: str):
        super().__init__(f"{message} (url={url}, attempts={attempts})")
        self.url = url
        self.attempts = attempts


class PersistFailure(ListingSyncError):
    """A record could not be written to the store."""

    def __init__(self, listing_key: Optional[str], message: str):
        super().__init__(f"{message} (listing_key={listing_key})")
        self.listing_key = listing_key
