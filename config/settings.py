"""
Configuration Settings

Centralized configuration management using Pydantic and environment variables.
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.listing_sync.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Built once at startup and passed to every component. Instances are
    immutable; use ``model_copy(update=...)`` to derive a variant.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # IDX feed (RESO web API)
    idx_api_url: Optional[str] = None
    idx_api_key: Optional[str] = None
    listing_resource: str = "Property"
    media_resource: str = "Media"
    modification_field: str = "ModificationTimestamp"
    request_timeout_seconds: int = 30

    # Fetch retry policy (retries after the first attempt)
    fetch_max_retries: int = 3
    fetch_backoff_seconds: float = 1.0

    # Pagination
    page_size: int = 100
    full_backfill: bool = False
    start_page: Optional[int] = None
    end_page: Optional[int] = None

    # Database settings
    database_url: Optional[str] = None
    database_password: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 5
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_echo: bool = False  # Set to True for SQL query logging
    create_tables: bool = False

    # Upsert retry policy (total attempts per record)
    upsert_max_retries: int = 3
    upsert_retry_delay_seconds: float = 1.0

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"

    # Application settings
    environment: str = "development"

    @property
    def feed_base_url(self) -> str:
        """Feed URL without trailing slashes."""
        return (self.idx_api_url or "").rstrip("/")

    def missing_for_mode(self, backfill: bool) -> List[str]:
        """Names of required values that are unset for the given mode."""
        required = {
            "IDX_API_URL": self.idx_api_url,
            "IDX_API_KEY": self.idx_api_key,
            "DATABASE_URL": self.database_url,
        }
        if backfill:
            required["START_PAGE"] = self.start_page
            required["END_PAGE"] = self.end_page
        return [name for name, value in required.items() if value in (None, "")]

    def require_for_mode(self, backfill: bool) -> None:
        """
        Validate that everything the active mode needs is configured.

        Raises:
            ConfigurationError: if a required value is missing or the page
                range is invalid
        """
        missing = self.missing_for_mode(backfill)
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )

        if self.page_size < 1:
            raise ConfigurationError(f"PAGE_SIZE must be positive, got {self.page_size}")

        if backfill:
            if self.start_page < 1:
                raise ConfigurationError(f"START_PAGE must be >= 1, got {self.start_page}")
            if self.end_page < self.start_page:
                raise ConfigurationError(
                    f"END_PAGE ({self.end_page}) must not be before START_PAGE ({self.start_page})"
                )
