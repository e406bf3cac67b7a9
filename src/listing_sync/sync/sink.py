"""
Upsert Sink

Writes normalized listings one at a time, each in its own transaction,
with a per-record retry budget independent of the feed retries.
"""
import time
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from src.listing_sync.db.repository import ListingRepository
from src.listing_sync.db.session import session_scope
from src.listing_sync.exceptions import PersistFailure
from src.listing_sync.utils.logger import get_logger
from src.listing_sync.utils.retry import call_with_retry

logger = get_logger(__name__)


class UpsertSink:
    """
    Persists normalized listings keyed by mls_id.

    A record that still fails after its retries is logged and skipped;
    it never stops the caller from writing the next one.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        repository: Optional[ListingRepository] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            session_factory: Factory for per-record sessions
            repository: Listing repository (injected by tests)
            max_retries: Total write attempts per record
            retry_delay: Base delay; attempt n waits retry_delay * n
            sleep: Sleep function (injected by tests)
        """
        self.session_factory = session_factory
        self.repository = repository or ListingRepository()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.sleep = sleep

    def write(self, record: Dict[str, Any]) -> None:
        """
        Upsert one record, retrying store errors.

        Raises:
            PersistFailure: if the record has no mls_id, the store rejects it
                outright, or every attempt failed
        """
        mls_id = record.get("mls_id")
        if not mls_id:
            raise PersistFailure(None, "Record has no mls_id")

        def attempt_write() -> None:
            with session_scope(self.session_factory) as session:
                self.repository.upsert(session, record)

        def log_retry(attempt: int, error: BaseException) -> None:
            logger.warning(
                "listing_upsert_retry",
                mls_id=mls_id,
                attempt=attempt,
                max_retries=self.max_retries,
                error=str(error),
            )

        try:
            call_with_retry(
                attempt_write,
                attempts=self.max_retries,
                delay=self.retry_delay,
                retry_on=(SQLAlchemyError,),
                on_retry=log_retry,
                sleep=self.sleep,
            )
        except SQLAlchemyError as e:
            raise PersistFailure(mls_id, f"Upsert failed after {self.max_retries} attempts: {e}") from e
        except ValueError as e:
            raise PersistFailure(mls_id, f"Upsert rejected: {e}") from e

    def upsert(self, record: Dict[str, Any]) -> bool:
        """
        Upsert one record, absorbing the failure.

        Returns:
            True if the record was written, False if it was skipped
        """
        try:
            self.write(record)
        except PersistFailure as e:
            logger.error(
                "listing_upsert_failed",
                mls_id=e.listing_key,
                error=str(e),
            )
            return False

        logger.info("listing_synced", mls_id=record.get("mls_id"))
        return True
