"""Pydantic schemas for open positions and lots."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel

from washsafe.models import Position, ShareLot


class ShareLotSchema(BaseModel):
    id: str
    symbol: str
    purchase_date: dt.date
    original_quantity: Decimal
    remaining_quantity: Decimal
    cost_per_share: Decimal
    purchase_transaction_id: str
    account: str
    applied_splits: list[str]

    @classmethod
    def from_domain(cls, lot: ShareLot) -> "ShareLotSchema":
        return cls(
            id=lot.id,
            symbol=lot.symbol,
            purchase_date=lot.purchase_date,
            original_quantity=lot.original_quantity,
            remaining_quantity=lot.remaining_quantity,
            cost_per_share=lot.cost_per_share,
            purchase_transaction_id=lot.purchase_transaction_id,
            account=lot.account,
            applied_splits=list(lot.applied_splits),
        )


class PositionSchema(BaseModel):
    symbol: str
    shares: Decimal
    cost_basis: Decimal
    average_cost: Decimal
    lots: list[ShareLotSchema]

    @classmethod
    def from_domain(cls, position: Position) -> "PositionSchema":
        return cls(
            symbol=position.symbol,
            shares=position.shares,
            cost_basis=position.cost_basis,
            average_cost=position.average_cost,
            lots=[ShareLotSchema.from_domain(lot) for lot in position.lots],
        )


class SafeToSellSchema(BaseModel):
    symbol: str
    last_purchase_date: dt.date | None = None
    safe_to_sell_date: dt.date | None = None
    safe_today: bool


__all__ = ["PositionSchema", "SafeToSellSchema", "ShareLotSchema"]
