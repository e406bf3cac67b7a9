"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.listing_sync.db.base import Base
from src.listing_sync.db.session import (
    create_db_engine,
    create_session_factory,
    session_scope,
    create_all_tables,
)
from src.listing_sync.db.models import Listing
from src.listing_sync.db.repository import BaseRepository, ListingRepository

__all__ = [
    # Base
    "Base",
    # Session management
    "create_db_engine",
    "create_session_factory",
    "session_scope",
    "create_all_tables",
    # Models
    "Listing",
    # Repositories
    "BaseRepository",
    "ListingRepository",
]
