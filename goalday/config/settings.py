"""
Configuration Management for Goal-Aligned Day

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The business-day offset (UTC+05:30) and the 1440-minute day cap are NOT
settings. They live in goalday.businessday and goalday.aggregation as
constants so day bucketing stays bit-reproducible.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    goals_sheet_name: str = Field(
        default="Goals",
        description="Name of the sheet for lifestyle goals"
    )
    tasks_sheet_name: str = Field(
        default="Tasks",
        description="Name of the sheet for tasks"
    )
    time_blocks_sheet_name: str = Field(
        default="TimeBlocks",
        description="Name of the sheet for time-block entries"
    )
    habits_sheet_name: str = Field(
        default="Habits",
        description="Name of the sheet for habits and their check-ins"
    )
    day_records_sheet_name: str = Field(
        default="GoalAlignedDays",
        description="Name of the sheet for aggregated day records"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class EngineSettings(BaseSettings):
    """Aggregation engine defaults."""

    model_config = SettingsConfigDict(
        env_prefix="GOALDAY_",
        extra="ignore"
    )

    default_target_minutes_per_day: int = Field(
        default=480,
        ge=60,
        le=1440,
        description="Daily target for a new user's streak (8 hours)"
    )
    default_task_minutes: int = Field(
        default=25,
        ge=1,
        description="Duration credited to a task with no recorded duration"
    )
    default_mindful_rating: int = Field(
        default=3,
        ge=1,
        le=5,
        description="Rating assumed for a task that was never rated"
    )
    mindful_rating_threshold: int = Field(
        default=4,
        ge=1,
        le=5,
        description="Tasks rated at or above this count as mindful"
    )
    min_meaningful_hours: float = Field(
        default=1.0,
        ge=0.0,
        le=24.0,
        description="Below this score24 the streak resets"
    )
    history_page_size: int = Field(
        default=30,
        ge=1,
        le=200,
        description="Default page size for day-record history"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.engine
        results["engine"] = True
    except Exception as e:
        results["engine"] = False
        results["engine_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
