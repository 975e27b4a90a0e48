"""Declarative base shared by the ledger tables."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Metadata root for ``wash_transaction``, ``share_lot`` and ``stock_split``."""
