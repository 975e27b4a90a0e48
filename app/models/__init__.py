"""Database model exports."""

from .ledger import (
    TRANSACTION_TYPES,
    ShareLotRecord,
    StockSplitRecord,
    TransactionRecord,
)

__all__ = [
    "TransactionRecord",
    "ShareLotRecord",
    "StockSplitRecord",
    "TRANSACTION_TYPES",
]
