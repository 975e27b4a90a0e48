"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from washsafe.models import DEFAULT_ACCOUNT

DEFAULT_TIMEZONE = "America/New_York"


class AppSettings(BaseSettings):
    """Configuration options for the WashSafe service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="WASHSAFE_")

    app_name: str = Field(default="WashSafe Wash-Sale Tracker")
    timezone: str = Field(default=DEFAULT_TIMEZONE)
    log_level: str = Field(default="INFO")

    database_url: str = Field(
        default="sqlite:///./washsafe.db",
        description="SQLAlchemy database URL for the ledger store.",
    )
    persistence_enabled: bool = Field(
        default=True,
        description="When disabled the engine keeps its state in memory only.",
    )

    wash_sale_window_days: int = Field(default=30, ge=1)
    safe_to_sell_offset_days: int = Field(default=31, ge=1)
    duplicate_split_window_hours: int = Field(default=24, ge=0)
    default_account: str = Field(default=DEFAULT_ACCOUNT, min_length=1)

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="washsafe")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        data = self.model_dump()
        data["database_url"] = make_url(self.database_url).render_as_string(hide_password=True)
        return data


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_TIMEZONE",
    "get_settings",
]
