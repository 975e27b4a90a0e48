"""Tunables for the accounting engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import DEFAULT_ACCOUNT


@dataclass(frozen=True)
class EngineConfig:
    wash_sale_window_days: int = 30
    safe_to_sell_offset_days: int = 31
    duplicate_split_window_hours: int = 24
    duplicate_price_tolerance: str = "0.01"
    default_account: str = DEFAULT_ACCOUNT

    @classmethod
    def from_settings(cls, settings: Any) -> "EngineConfig":
        """Build from any object exposing the same attribute names (e.g. ``AppSettings``)."""

        return cls(
            wash_sale_window_days=settings.wash_sale_window_days,
            safe_to_sell_offset_days=settings.safe_to_sell_offset_days,
            duplicate_split_window_hours=settings.duplicate_split_window_hours,
            default_account=settings.default_account,
        )


__all__ = ["EngineConfig"]
