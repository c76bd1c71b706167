"""
Configuration Management for the Finance Dashboard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for current expense rows"
    )
    history_sheet_name: str = Field(
        default="ExpenseHistory",
        description="Name of the sheet for the expense history log"
    )
    income_sources_sheet_name: str = Field(
        default="IncomeSources",
        description="Name of the sheet for income sources"
    )
    income_entries_sheet_name: str = Field(
        default="IncomeEntries",
        description="Name of the sheet for monthly income entries"
    )
    income_amounts_sheet_name: str = Field(
        default="IncomeAmounts",
        description="Name of the sheet for per-source income amounts"
    )
    net_worth_sheet_name: str = Field(
        default="NetWorth",
        description="Name of the sheet for net worth snapshots"
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

    # Expense trend chart
    trend_window_months: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Number of most recent months shown on the expense trend chart"
    )
    display_timezone: str = Field(
        default="UTC",
        description="Timezone used to assign history events to calendar months"
    )

    # Display
    privacy_hidden: bool = Field(
        default=False,
        description="Start with financial figures masked"
    )
    currency: str = Field(
        default="USD",
        pattern="^[A-Z]{3}$",
        description="Display currency"
    )

    @field_validator('display_timezone')
    @classmethod
    def validate_display_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def timezone(self) -> tzinfo:
        """The display timezone as a tzinfo."""
        return ZoneInfo(self.display_timezone)


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries describing failures. Useful for startup checks.
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
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
