"""
Database Session Management

Builds the engine and session factory from settings and provides a
transactional session scope.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, exc
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from config.settings import Settings
from src.listing_sync.db.repository import UPSERT_DIALECTS
from src.listing_sync.exceptions import ConfigurationError
from src.listing_sync.utils.logger import get_logger

logger = get_logger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    """
    Create the database engine.

    The store credential (DATABASE_PASSWORD), when set, is injected into
    DATABASE_URL. Pool settings only apply to server databases.

    Args:
        settings: Application settings

    Returns:
        SQLAlchemy engine

    Raises:
        ConfigurationError: if the URL is invalid or names a backend without
            an upsert construct
    """
    try:
        url = make_url(settings.database_url)
    except exc.ArgumentError as e:
        raise ConfigurationError(f"Invalid DATABASE_URL: {e}") from e

    backend = url.get_backend_name()
    if backend not in UPSERT_DIALECTS:
        raise ConfigurationError(
            f"Unsupported database backend '{backend}' "
            f"(supported: {', '.join(sorted(UPSERT_DIALECTS))})"
        )

    if settings.database_password:
        url = url.set(password=settings.database_password)

    engine_kwargs = {
        "echo": settings.database_echo,
        "pool_pre_ping": True,  # Verify connections before using
    }
    if backend != "sqlite":
        engine_kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
        )

    try:
        engine = create_engine(url, **engine_kwargs)
    except exc.ArgumentError as e:
        raise ConfigurationError(f"Cannot create database engine: {e}") from e

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        logger.debug("database_connection_established")

    logger.info(
        "database_engine_created",
        backend=backend,
        host=url.host,
        database=url.database,
    )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Get database session with automatic cleanup.

    Usage:
        with session_scope(factory) as session:
            result = session.execute(select(Listing)).scalars().all()

    Yields:
        Database session

    Raises:
        Exception: Re-raises any exception after rollback
    """
    session = session_factory()
    try:
        logger.debug("database_session_created")
        yield session
        session.commit()
        logger.debug("database_session_committed")
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_error",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()
        logger.debug("database_session_closed")


def create_all_tables(engine: Engine) -> None:
    """
    Create all database tables defined in models.

    Tables that already exist are left untouched.
    """
    from src.listing_sync.db.base import Base, import_all_models

    logger.info("creating_database_tables")
    import_all_models()
    Base.metadata.create_all(bind=engine)
    logger.info("database_tables_created")
