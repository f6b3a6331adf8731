"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Every setting can be overridden through the environment or a .env file.

The ARCHIVE_BACKEND variable controls where finalized orders are persisted:
    - none: archival disabled (finalized orders are simply dropped)
    - database: SQLAlchemy async engine (SQLite by default, PostgreSQL in production)
    - excel: append-only Excel workbook guarded by a file lock

Usage:
    from tableside.core.config import get_settings

    settings = get_settings()
    if settings.archive_enabled:
        ...

Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing, archive usually disabled
        PRODUCTION: Live restaurant floor
        STAGING: Pre-production testing
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class ArchiveBackend(str, Enum):
    """Where finalized orders are written."""
    NONE = "none"
    DATABASE = "database"
    EXCEL = "excel"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # API Configuration
        api_host: Host to bind the API server
        api_port: Port for the API server
        cors_origins: Comma-separated list of allowed browser origins

        # Order Store
        page_size: Number of orders per listing page
        max_items_per_order: Cap on the summed item amounts of one order
        enforce_item_cap: Toggle for the item cap policy
        order_number_max: Display numbers roll back to 1 after this value

        # Archive
        archive_backend: none / database / excel
        archive_timeout_seconds: Upper bound for one archive write
        database_url: Async SQLAlchemy URL for the database backend
        data_directory: Directory for the Excel workbook
        excel_filename: Workbook filename
        excel_lock_timeout: Seconds to wait for the workbook lock
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Tableside Order API",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001,http://localhost:12345",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # ORDER STORE
    # ==========================================================================

    page_size: int = Field(
        default=10,
        ge=1,
        description="Orders per page for active order listings"
    )
    max_items_per_order: int = Field(
        default=255,
        ge=1,
        description="Maximum summed item amount of a single order"
    )
    enforce_item_cap: bool = Field(
        default=True,
        description="Reject item batches that exceed max_items_per_order"
    )
    order_number_max: int = Field(
        default=999,
        ge=1,
        description="Display order numbers roll over after this value"
    )

    # ==========================================================================
    # ARCHIVE
    # ==========================================================================

    archive_backend: ArchiveBackend = Field(
        default=ArchiveBackend.NONE,
        description="Storage used for finalized orders"
    )
    archive_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for one archive write"
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///data/finished_orders.db",
        description="Async SQLAlchemy URL for archived orders"
    )

    # ==========================================================================
    # FILE STORAGE
    # ==========================================================================

    data_directory: str = Field(
        default="data",
        description="Directory for data files"
    )
    excel_filename: str = Field(
        default="finished_orders.xlsx",
        description="Excel archive filename"
    )
    excel_lock_timeout: int = Field(
        default=30,
        description="Seconds to wait for file lock"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("archive_backend", mode="before")
    @classmethod
    def validate_archive_backend(cls, v: str) -> ArchiveBackend:
        """Convert string to ArchiveBackend enum (empty means disabled)."""
        if isinstance(v, ArchiveBackend):
            return v
        if v is None or str(v).strip() == "":
            return ArchiveBackend.NONE
        try:
            return ArchiveBackend(str(v).strip().lower())
        except ValueError:
            valid = [e.value for e in ArchiveBackend]
            raise ValueError(f"Invalid archive_backend. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def archive_enabled(self) -> bool:
        """Check if finalized orders are persisted anywhere."""
        return self.archive_backend != ArchiveBackend.NONE

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_archive_config(self) -> list[str]:
        """
        Validate that the selected archive backend is configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.archive_backend == ArchiveBackend.DATABASE and not self.database_url:
            missing.append("DATABASE_URL")
        if self.archive_backend == ArchiveBackend.EXCEL:
            if not self.data_directory:
                missing.append("DATA_DIRECTORY")
            if not self.excel_filename:
                missing.append("EXCEL_FILENAME")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded only once per process; call
    ``get_settings.cache_clear()`` to reload them (tests do).

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured application logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("tableside")


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
