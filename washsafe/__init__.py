"""Core package for WashSafe FIFO lot accounting and wash-sale analysis."""

from .config import EngineConfig
from .engine import AccountingEngine
from .errors import EngineError, ErrorCode, TransactionValidationError
from .ledger import Ledger
from .lots import AllocationPolicy, FifoAllocator, LotStore
from .models import (
    OutcomeType,
    Position,
    RecordResult,
    SaleAllocation,
    ShareLot,
    StockSplit,
    Transaction,
    TransactionType,
    WashSaleOutcome,
    YearStats,
)
from .persistence import EngineState, InMemoryStateStore, StateStore
from .splits import SplitAdjustment, SplitRegistry
from .wash_sale import WashSaleEvaluator

__all__ = [
    "AccountingEngine",
    "AllocationPolicy",
    "EngineConfig",
    "EngineError",
    "EngineState",
    "ErrorCode",
    "FifoAllocator",
    "InMemoryStateStore",
    "Ledger",
    "LotStore",
    "OutcomeType",
    "Position",
    "RecordResult",
    "SaleAllocation",
    "ShareLot",
    "SplitAdjustment",
    "SplitRegistry",
    "StateStore",
    "StockSplit",
    "Transaction",
    "TransactionType",
    "TransactionValidationError",
    "WashSaleEvaluator",
    "WashSaleOutcome",
    "YearStats",
]
