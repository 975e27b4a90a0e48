"""Domain records used by the WashSafe accounting core."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, getcontext
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import EngineError

getcontext().prec = 28

ZERO = Decimal("0")
DEFAULT_ACCOUNT = "Unknown"
MAX_DECIMAL_PLACES = 10


def decimal_places(value: Decimal) -> int:
    """Significant digits after the point, ignoring trailing zeros."""

    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


class TransactionType(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Transaction:
    """A normalized buy or sell exactly as it was traded."""

    id: str
    symbol: str
    type: TransactionType
    quantity: Decimal
    price: Decimal
    date: date
    account: str = DEFAULT_ACCOUNT
    created_at: Optional[datetime] = None

    @property
    def total(self) -> Decimal:
        return self.quantity * self.price

    @property
    def is_buy(self) -> bool:
        return self.type is TransactionType.BUY

    @property
    def is_sell(self) -> bool:
        return self.type is TransactionType.SELL

    def ledger_key(self) -> tuple[date, str]:
        return (self.date, self.id)

    def replay_key(self) -> tuple[date, int, str]:
        """Ordering used when rebuilding lots: same-day buys land before sells."""

        return (self.date, 0 if self.is_buy else 1, self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "type": self.type.value,
            "quantity": str(self.quantity),
            "price": str(self.price),
            "total": str(self.total),
            "date": self.date.isoformat(),
            "account": self.account,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        """Rehydrate a record previously produced by :meth:`to_dict`."""

        created_at = data.get("created_at")
        return cls(
            id=str(data["id"]),
            symbol=str(data["symbol"]),
            type=TransactionType(str(data["type"]).lower()),
            quantity=Decimal(str(data["quantity"])),
            price=Decimal(str(data["price"])),
            date=date.fromisoformat(str(data["date"])[:10]),
            account=data.get("account") or DEFAULT_ACCOUNT,
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )


@dataclass
class ShareLot:
    """Shares from a single purchase, expressed in split-adjusted terms."""

    id: str
    symbol: str
    purchase_date: date
    original_quantity: Decimal
    remaining_quantity: Decimal
    cost_per_share: Decimal
    purchase_transaction_id: str
    account: str = DEFAULT_ACCOUNT
    applied_splits: tuple[str, ...] = ()

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0

    @property
    def remaining_cost(self) -> Decimal:
        return self.remaining_quantity * self.cost_per_share

    def consume(self, shares: Decimal) -> None:
        if shares < 0 or shares > self.remaining_quantity:
            raise ValueError(
                f"Cannot consume {shares} shares from lot {self.id} "
                f"with {self.remaining_quantity} remaining"
            )
        self.remaining_quantity -= shares

    def copy(self) -> "ShareLot":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "purchase_date": self.purchase_date.isoformat(),
            "original_quantity": str(self.original_quantity),
            "remaining_quantity": str(self.remaining_quantity),
            "cost_per_share": str(self.cost_per_share),
            "purchase_transaction_id": self.purchase_transaction_id,
            "account": self.account,
            "applied_splits": list(self.applied_splits),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ShareLot":
        return cls(
            id=str(data["id"]),
            symbol=str(data["symbol"]),
            purchase_date=date.fromisoformat(str(data["purchase_date"])[:10]),
            original_quantity=Decimal(str(data["original_quantity"])),
            remaining_quantity=Decimal(str(data["remaining_quantity"])),
            cost_per_share=Decimal(str(data["cost_per_share"])),
            purchase_transaction_id=str(data["purchase_transaction_id"]),
            account=data.get("account") or DEFAULT_ACCOUNT,
            applied_splits=tuple(data.get("applied_splits") or ()),
        )


@dataclass(frozen=True)
class StockSplit:
    """A forward (ratio > 1) or reverse (ratio < 1) split of one symbol."""

    id: str
    symbol: str
    split_date: date
    ratio: Decimal
    applied_at: Optional[datetime] = None

    @property
    def is_forward(self) -> bool:
        return self.ratio >= 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "split_date": self.split_date.isoformat(),
            "ratio": str(self.ratio),
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StockSplit":
        applied_at = data.get("applied_at")
        return cls(
            id=str(data["id"]),
            symbol=str(data["symbol"]).upper(),
            split_date=date.fromisoformat(str(data["split_date"])[:10]),
            ratio=Decimal(str(data["ratio"])),
            applied_at=datetime.fromisoformat(applied_at) if applied_at else None,
        )


class LotSaleState(str, Enum):
    NOT_A_LOSS = "not_a_loss"
    LOSS_NO_CONFLICT = "loss_no_conflict"
    LOSS_WITH_CONFLICT = "loss_with_conflict"


@dataclass(frozen=True)
class WashSaleCheck:
    """Wash-sale verdict for one lot-sale."""

    state: LotSaleState
    disallowed_loss: Decimal = ZERO
    conflicting_purchases: tuple[Transaction, ...] = ()
    window_start: Optional[date] = None
    window_end: Optional[date] = None

    @property
    def is_wash_sale(self) -> bool:
        return self.state is LotSaleState.LOSS_WITH_CONFLICT


@dataclass
class LotSale:
    """Shares drawn from one lot by one sell."""

    lot_id: str
    purchase_transaction_id: str
    purchase_date: date
    shares_from_lot: Decimal
    cost_per_share: Decimal
    cost_basis: Decimal
    sale_proceeds: Decimal
    pnl: Decimal
    wash_sale: Optional[WashSaleCheck] = None

    @property
    def is_wash_sale(self) -> bool:
        return self.wash_sale is not None and self.wash_sale.is_wash_sale

    @property
    def disallowed_loss(self) -> Decimal:
        return self.wash_sale.disallowed_loss if self.is_wash_sale else ZERO


@dataclass
class SaleAllocation:
    """FIFO allocation of one sell across open lots.

    ``quantity`` and ``price`` are expressed in the same split-adjusted terms
    as the lots they were matched against.
    """

    symbol: str
    quantity: Decimal
    price: Decimal
    sell_date: date
    lot_sales: list[LotSale] = field(default_factory=list)
    success: bool = True
    shortfall: Decimal = ZERO
    error: Optional[EngineError] = None

    @property
    def shares_allocated(self) -> Decimal:
        return sum((sale.shares_from_lot for sale in self.lot_sales), ZERO)

    @property
    def cost_basis(self) -> Decimal:
        return sum((sale.cost_basis for sale in self.lot_sales), ZERO)

    @property
    def proceeds(self) -> Decimal:
        return sum((sale.sale_proceeds for sale in self.lot_sales), ZERO)

    @property
    def pnl(self) -> Decimal:
        return sum((sale.pnl for sale in self.lot_sales), ZERO)

    @property
    def is_wash_sale(self) -> bool:
        return any(sale.is_wash_sale for sale in self.lot_sales)

    @property
    def disallowed_loss(self) -> Decimal:
        return sum((sale.disallowed_loss for sale in self.lot_sales), ZERO)

    @property
    def recognized_pnl(self) -> Decimal:
        """Realized P&L once disallowed wash-sale losses are added back."""

        return self.pnl + self.disallowed_loss


class OutcomeType(str, Enum):
    VIOLATION = "wash_sale_violation"
    WARNING = "wash_sale_warning"


@dataclass(frozen=True)
class WashSaleOutcome:
    """Per-transaction wash-sale result attached to a recorded sell."""

    type: OutcomeType
    symbol: str
    sell_date: date
    loss: Decimal
    disallowed_loss: Decimal
    window_start: date
    window_end: date
    conflicting_purchases: tuple[Transaction, ...] = ()
    recent_purchases: tuple[Transaction, ...] = ()
    safe_date: Optional[date] = None
    message: str = ""

    @property
    def is_violation(self) -> bool:
        return self.type is OutcomeType.VIOLATION


@dataclass
class RecordResult:
    success: bool
    transaction: Optional[Transaction] = None
    allocation: Optional[SaleAllocation] = None
    wash_sale: Optional[WashSaleOutcome] = None
    shortfall: Decimal = ZERO
    error: Optional[EngineError] = None

    @property
    def wash_sale_violation(self) -> Optional[WashSaleOutcome]:
        if self.wash_sale is not None and self.wash_sale.is_violation:
            return self.wash_sale
        return None


@dataclass
class TransactionAnalysis:
    """Point-in-time FIFO and wash-sale analysis of one recorded sell."""

    transaction: Transaction
    allocation: Optional[SaleAllocation] = None
    outcome: Optional[WashSaleOutcome] = None

    @property
    def is_wash_sale(self) -> bool:
        return self.outcome is not None and self.outcome.is_violation

    @property
    def pnl(self) -> Decimal:
        return self.allocation.pnl if self.allocation else ZERO

    @property
    def disallowed_loss(self) -> Decimal:
        return self.allocation.disallowed_loss if self.allocation else ZERO


@dataclass
class Position:
    symbol: str
    shares: Decimal
    cost_basis: Decimal
    average_cost: Decimal
    lots: list[ShareLot] = field(default_factory=list)


@dataclass
class YearStats:
    year: int
    total_gains: Decimal = ZERO
    total_losses: Decimal = ZERO
    wash_sale_count: int = 0
    disallowed_losses: Decimal = ZERO
    transaction_count: int = 0
    sell_count: int = 0

    @property
    def net_pnl(self) -> Decimal:
        return self.total_gains - self.total_losses


@dataclass(frozen=True)
class RebuildIssue:
    transaction_id: str
    symbol: str
    date: date
    shortfall: Decimal
    message: str


@dataclass
class RebuildReport:
    lots_created: int = 0
    sells_replayed: int = 0
    open_lots: int = 0
    issues: list[RebuildIssue] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.issues


@dataclass
class SplitApplication:
    success: bool
    split: Optional[StockSplit] = None
    lots_affected: int = 0
    transactions_affected: int = 0
    already_applied: bool = False
    error: Optional[EngineError] = None


@dataclass
class ImportReport:
    """Outcome of a bulk import of normalized transaction records."""

    received: int = 0
    imported: int = 0
    duplicates: int = 0
    invalid: int = 0
    rejected: int = 0
    shortfalls: int = 0
    transactions: list[Transaction] = field(default_factory=list)
    errors: list[EngineError] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return self.duplicates + self.invalid + self.rejected


__all__ = [
    "ZERO",
    "DEFAULT_ACCOUNT",
    "MAX_DECIMAL_PLACES",
    "decimal_places",
    "TransactionType",
    "Transaction",
    "ShareLot",
    "StockSplit",
    "LotSaleState",
    "WashSaleCheck",
    "LotSale",
    "SaleAllocation",
    "OutcomeType",
    "WashSaleOutcome",
    "RecordResult",
    "TransactionAnalysis",
    "Position",
    "YearStats",
    "RebuildIssue",
    "RebuildReport",
    "SplitApplication",
    "ImportReport",
]
