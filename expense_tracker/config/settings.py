"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here. Every knob can be overridden with an
EXPENSE_TRACKER_* environment variable or a .env file next to the app.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXPENSE_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG instead of INFO"
    )

    # Storage substrate
    storage_backend: str = Field(
        default="json_file",
        pattern="^(json_file|memory)$",
        description="Key-value substrate used for persistence"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the JSON documents"
    )
    expenses_key: str = Field(
        default="expenses",
        min_length=1,
        description="Storage key of the expense list"
    )
    categories_key: str = Field(
        default="categories",
        min_length=1,
        description="Storage key of the category list"
    )
    storage_write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a file write before the substrate gives up"
    )

    # Audit trail
    persist_audit_log: bool = Field(
        default=False,
        description="Also persist audit events to the storage substrate"
    )
    audit_log_key: str = Field(
        default="audit_log",
        min_length=1,
        description="Storage key of the persisted audit log"
    )
    audit_log_max_events: int = Field(
        default=500,
        ge=1,
        description="Oldest audit events are dropped beyond this count"
    )

    # Record rules
    strict_missing_ids: bool = Field(
        default=False,
        description="Raise NotFoundError on update/delete of an unknown id"
    )
    future_date_tolerance_days: int = Field(
        default=0,
        ge=0,
        description="How many days past today an expense date may be"
    )
    max_expense_amount: float = Field(
        default=100000.0,
        gt=0,
        description="Amounts above this are accepted with a warning"
    )

    # Statistics / presentation
    recent_expenses_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Number of records in the recent activity list"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol used when formatting amounts"
    )

    @field_validator('data_dir')
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Allow ~ in the configured data directory."""
        return v.expanduser()


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return AppSettings()
