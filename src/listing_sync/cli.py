"""
Command-line entry point for the IDX listing sync.

Usage:
    python -m src.listing_sync.cli                      # incremental sync
    python -m src.listing_sync.cli --backfill --start-page 1 --end-page 250
"""
import argparse
import sys
from typing import List, Optional

from pydantic import ValidationError

from config.settings import Settings
from src.listing_sync.db.session import create_all_tables, create_db_engine, create_session_factory
from src.listing_sync.exceptions import ConfigurationError
from src.listing_sync.feed.client import FeedClient
from src.listing_sync.models.sync_report import SyncReport
from src.listing_sync.sync.modes import SyncMode
from src.listing_sync.sync.orchestrator import SyncOrchestrator
from src.listing_sync.sync.sink import UpsertSink
from src.listing_sync.sync.watermark import WatermarkTracker
from src.listing_sync.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync IDX listings into the properties table")
    parser.add_argument(
        "--backfill",
        action="store_true",
        default=None,
        help="Full backfill over an explicit page range (overrides FULL_BACKFILL)",
    )
    parser.add_argument("--start-page", type=int, default=None, help="First page (overrides START_PAGE)")
    parser.add_argument("--end-page", type=int, default=None, help="Last page, inclusive (overrides END_PAGE)")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        default=None,
        help="Create missing tables before syncing (overrides CREATE_TABLES)",
    )
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """
    Build settings from the environment, then apply command-line overrides.

    Raises:
        ConfigurationError: if the environment holds invalid values
    """
    try:
        settings = Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    overrides = {
        "full_backfill": args.backfill,
        "start_page": args.start_page,
        "end_page": args.end_page,
        "create_tables": args.create_tables,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return settings.model_copy(update=overrides) if overrides else settings


def build_orchestrator(settings: Settings) -> SyncOrchestrator:
    """Assemble the sync components from settings."""
    engine = create_db_engine(settings)
    if settings.create_tables:
        create_all_tables(engine)
    session_factory = create_session_factory(engine)

    return SyncOrchestrator(
        client=FeedClient(settings),
        watermark_tracker=WatermarkTracker(session_factory),
        sink=UpsertSink(
            session_factory,
            max_retries=settings.upsert_max_retries,
            retry_delay=settings.upsert_retry_delay_seconds,
        ),
        page_size=settings.page_size,
    )


def run_sync(settings: Settings) -> SyncReport:
    mode = SyncMode.from_flag(settings.full_backfill)
    orchestrator = build_orchestrator(settings)
    return orchestrator.run(mode, start_page=settings.start_page, end_page=settings.end_page)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one sync and return the process exit status.

    Returns:
        0 on completion (including a refused incremental run), 1 on
        configuration errors and fatal run failures
    """
    args = parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigurationError as e:
        setup_logging(Settings.model_construct())
        logger.error("configuration_error", error=str(e))
        return 1

    setup_logging(settings)

    try:
        settings.require_for_mode(settings.full_backfill)
        report = run_sync(settings)
    except ConfigurationError as e:
        logger.error("configuration_error", error=str(e))
        return 1

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
