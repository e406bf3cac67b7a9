"""
Shared fixtures for listing sync tests.

Provides settings, an in-memory SQLite store and a no-op sleep.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from config.settings import Settings
from src.listing_sync.db.base import Base
from src.listing_sync.db.session import create_session_factory
from tests.listing_sync.fakes import FEED_URL


@pytest.fixture
def settings():
    """Settings pointing at a fake feed, with retries that never wait."""
    return Settings(
        _env_file=None,
        idx_api_url=FEED_URL + "/",
        idx_api_key="test-key",
        database_url="sqlite://",
        fetch_backoff_seconds=0,
        upsert_retry_delay_seconds=0,
    )


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def no_sleep():
    """Records requested sleeps instead of sleeping."""
    delays = []
    return delays.append, delays
