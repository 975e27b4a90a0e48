"""Transaction, lot and split tables backing the engine state."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, Enum, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from washsafe.models import MAX_DECIMAL_PLACES

TRANSACTION_TYPES = ("buy", "sell")


class TransactionRecord(Base):
    __tablename__ = "wash_transaction"
    __table_args__ = (
        Index("ix_wash_transaction_symbol_date", "symbol", "trade_date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    type: Mapped[str] = mapped_column(Enum(*TRANSACTION_TYPES, name="wash_transaction_type"))
    qty: Mapped[float] = mapped_column(Numeric(18, 0))
    price: Mapped[float] = mapped_column(Numeric(28, MAX_DECIMAL_PLACES))
    trade_date: Mapped[date] = mapped_column(Date, index=True)
    account: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ShareLotRecord(Base):
    __tablename__ = "share_lot"
    __table_args__ = (
        Index("ix_share_lot_symbol_open", "symbol", "purchase_date"),
    )

    id: Mapped[str] = mapped_column(String(80), primary_key=True)
    position: Mapped[int] = mapped_column(Integer)
    symbol: Mapped[str] = mapped_column(String(20), index=True)
    purchase_date: Mapped[date] = mapped_column(Date)
    original_quantity: Mapped[float] = mapped_column(Numeric(24, 8))
    remaining_quantity: Mapped[float] = mapped_column(Numeric(24, 8))
    cost_per_share: Mapped[float] = mapped_column(Numeric(24, 10))
    purchase_transaction_id: Mapped[str] = mapped_column(String(64))
    account: Mapped[str | None] = mapped_column(String(64), nullable=True)
    applied_splits: Mapped[list[str]] = mapped_column(JSON, default=list)


class StockSplitRecord(Base):
    __tablename__ = "stock_split"
    __table_args__ = (
        Index("ix_stock_split_symbol_date", "symbol", "split_date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    symbol: Mapped[str] = mapped_column(String(20))
    split_date: Mapped[date] = mapped_column(Date)
    ratio: Mapped[float] = mapped_column(Numeric(28, MAX_DECIMAL_PLACES))
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


__all__ = [
    "TransactionRecord",
    "ShareLotRecord",
    "StockSplitRecord",
    "TRANSACTION_TYPES",
]
