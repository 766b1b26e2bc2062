"""
Configuration Management for FinSight

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Budget thresholds live here rather than in the calculators so that the
50/30/20 split can be tuned without touching business logic.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets ledger storage configuration."""

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
    users_sheet_name: str = Field(default="Users")
    expenses_sheet_name: str = Field(default="Expenses")
    assets_sheet_name: str = Field(default="Assets")
    debts_sheet_name: str = Field(default="Debts")
    snapshots_sheet_name: str = Field(default="NetWorthSnapshots")
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
        env_prefix="FINSIGHT_",
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
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which ledger store backs the engine"
    )

    # Reporting
    default_history_limit: int = Field(
        default=12,
        ge=1,
        le=120,
        description="Number of net worth snapshots returned by default"
    )
    top_category_count: int = Field(
        default=3,
        ge=1,
        le=20,
        description="How many categories the insights report"
    )

    # 50/30/20 thresholds, all in percent of monthly income
    needs_limit_pct: float = Field(default=50.0, ge=0, le=100)
    needs_off_track_pct: float = Field(default=60.0, ge=0, le=100)
    wants_limit_pct: float = Field(default=30.0, ge=0, le=100)
    wants_off_track_pct: float = Field(default=40.0, ge=0, le=100)
    savings_target_pct: float = Field(default=20.0, ge=0, le=100)
    savings_off_track_pct: float = Field(default=10.0, ge=0, le=100)

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'AppSettings':
        """Off-track bands must sit beyond their warning limits."""
        if self.needs_off_track_pct < self.needs_limit_pct:
            raise ValueError("needs_off_track_pct must be >= needs_limit_pct")
        if self.wants_off_track_pct < self.wants_limit_pct:
            raise ValueError("wants_off_track_pct must be >= wants_limit_pct")
        if self.savings_off_track_pct > self.savings_target_pct:
            raise ValueError("savings_off_track_pct must be <= savings_target_pct")
        return self


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
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    try:
        app = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)
        return results

    if app.storage_backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
