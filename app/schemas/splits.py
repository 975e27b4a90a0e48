"""Pydantic schemas for stock split administration."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from washsafe.models import SplitApplication, StockSplit


class SplitCreateRequest(BaseModel):
    symbol: str = Field(..., examples=["NVDA"])
    split_date: dt.date
    ratio: Decimal = Field(..., gt=0, description="New shares per old share; below 1 for reverse splits")
    id: str | None = None


class StockSplitSchema(BaseModel):
    id: str
    symbol: str
    split_date: dt.date
    ratio: Decimal
    applied_at: dt.datetime | None = None

    @classmethod
    def from_domain(cls, split: StockSplit) -> "StockSplitSchema":
        return cls(
            id=split.id,
            symbol=split.symbol,
            split_date=split.split_date,
            ratio=split.ratio,
            applied_at=split.applied_at,
        )


class SplitApplicationSchema(BaseModel):
    split: StockSplitSchema
    lots_affected: int
    transactions_affected: int
    already_applied: bool

    @classmethod
    def from_domain(cls, result: SplitApplication) -> "SplitApplicationSchema":
        return cls(
            split=StockSplitSchema.from_domain(result.split),
            lots_affected=result.lots_affected,
            transactions_affected=result.transactions_affected,
            already_applied=result.already_applied,
        )


__all__ = ["SplitApplicationSchema", "SplitCreateRequest", "StockSplitSchema"]
