"""
Repository Pattern for Data Access

Provides CRUD helpers and the listing-specific upsert and watermark queries.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import desc, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from src.listing_sync.db.models import Listing
from src.listing_sync.utils.logger import get_logger
from src.listing_sync.utils.timestamps import ensure_utc

logger = get_logger(__name__)

T = TypeVar('T')

# Dialects with an INSERT ... ON CONFLICT DO UPDATE construct
UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BaseRepository:
    """
    Base repository with common read operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model
        logger.debug("repository_initialized", model=model.__name__)

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def get_all(self, session: Session, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """
        Get all records with optional pagination.

        Args:
            session: Database session
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            List of model instances
        """
        query = select(self.model).offset(offset)
        if limit:
            query = query.limit(limit)

        return session.execute(query).scalars().all()

    def count(self, session: Session) -> int:
        """
        Count total records.

        Args:
            session: Database session

        Returns:
            Total count
        """
        count = session.scalar(select(func.count()).select_from(self.model))
        logger.debug("repository_count", model=self.model.__name__, count=count)
        return count


class ListingRepository(BaseRepository):
    """Repository for Listing model with upsert and watermark queries."""

    conflict_key = "mls_id"

    def __init__(self):
        super().__init__(Listing)

    def get_by_mls_id(self, session: Session, mls_id: str) -> Optional[Listing]:
        """
        Get listing by feed ListingKey.

        Args:
            session: Database session
            mls_id: External listing id

        Returns:
            Listing instance or None
        """
        return self.get_by_id(session, mls_id)

    def upsert(self, session: Session, listing_data: Dict[str, Any]) -> None:
        """
        Insert or replace a listing by mls_id (last write wins).

        Every non-key column is overwritten with the incoming value.

        Args:
            session: Database session
            listing_data: Column values (must include mls_id)

        Raises:
            ValueError: if mls_id is missing or the dialect has no upsert
        """
        mls_id = listing_data.get(self.conflict_key)
        if not mls_id:
            raise ValueError("mls_id is required for upsert")

        dialect = session.get_bind().dialect.name
        insert = UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise ValueError(f"Upsert not supported for dialect '{dialect}'")

        stmt = insert(Listing).values(**listing_data)
        update_columns = {
            k: getattr(stmt.excluded, k) for k in listing_data if k != self.conflict_key
        }
        update_columns["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=[self.conflict_key],
            set_=update_columns,
        )

        session.execute(stmt)
        session.flush()

        logger.debug("listing_upserted", mls_id=mls_id)

    def get_latest_modification_timestamp(self, session: Session) -> Optional[datetime]:
        """
        Most recent modification_timestamp across all listings.

        Returns:
            Aware UTC datetime, or None when no row carries one
        """
        query = (
            select(Listing.modification_timestamp)
            .where(Listing.modification_timestamp.is_not(None))
            .order_by(desc(Listing.modification_timestamp))
            .limit(1)
        )
        latest = session.execute(query).scalar_one_or_none()
        return ensure_utc(latest) if latest is not None else None
