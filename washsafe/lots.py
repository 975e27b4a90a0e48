"""Open share lots and FIFO allocation of sells against them."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator

from .errors import EngineError, ErrorCode
from .models import ZERO, LotSale, SaleAllocation, ShareLot, Transaction
from .splits import SplitAdjustment, SplitRegistry

logger = logging.getLogger(__name__)


class AllocationPolicy(str, Enum):
    STRICT = "strict"
    ALLOW_PARTIAL = "allow_partial"


def lot_for_purchase(tx: Transaction, adjustment: SplitAdjustment) -> ShareLot:
    """Build the lot opened by buy ``tx`` in the terms given by ``adjustment``."""

    quantity = adjustment.quantity(tx.quantity)
    return ShareLot(
        id=f"lot-{tx.id}",
        symbol=tx.symbol,
        purchase_date=tx.date,
        original_quantity=quantity,
        remaining_quantity=quantity,
        cost_per_share=adjustment.price(tx.price),
        purchase_transaction_id=tx.id,
        account=tx.account,
        applied_splits=adjustment.split_ids,
    )


class LotStore:
    """In-memory lots grouped by symbol.

    ``split_horizon`` is the last split date folded into the lots; ``None``
    means every registered split.
    """

    def __init__(self, lots: Iterable[ShareLot] = (), *, split_horizon: date | None = None) -> None:
        self._lots: dict[str, list[ShareLot]] = {}
        self.split_horizon = split_horizon
        for lot in lots:
            self.add(lot)

    def __len__(self) -> int:
        return sum(len(items) for items in self._lots.values())

    def __iter__(self) -> Iterator[ShareLot]:
        for symbol in sorted(self._lots):
            yield from self._lots[symbol]

    def add(self, lot: ShareLot) -> None:
        self._lots.setdefault(lot.symbol, []).append(lot)

    def get(self, lot_id: str) -> ShareLot | None:
        for lot in self:
            if lot.id == lot_id:
                return lot
        return None

    def symbols(self) -> list[str]:
        return sorted(symbol for symbol, items in self._lots.items() if items)

    def open_lots(self, symbol: str) -> list[ShareLot]:
        """Lots with shares left, oldest purchase first; ties keep insertion order."""

        items = [lot for lot in self._lots.get(symbol.upper(), []) if lot.is_open]
        return sorted(items, key=lambda lot: lot.purchase_date)

    def total_shares(self, symbol: str) -> Decimal:
        return sum((lot.remaining_quantity for lot in self.open_lots(symbol)), ZERO)

    def prune(self) -> int:
        """Drop fully consumed lots; returns how many were removed."""

        removed = 0
        for symbol in list(self._lots):
            kept = [lot for lot in self._lots[symbol] if lot.is_open]
            removed += len(self._lots[symbol]) - len(kept)
            if kept:
                self._lots[symbol] = kept
            else:
                del self._lots[symbol]
        return removed

    def clear(self) -> None:
        self._lots.clear()

    def snapshot(self) -> list[ShareLot]:
        return [lot.copy() for lot in self]


class FifoAllocator:
    """Consumes sells against a :class:`LotStore`, oldest lots first."""

    def __init__(self, lots: LotStore, splits: SplitRegistry) -> None:
        self.lots = lots
        self.splits = splits

    def open_purchase(self, tx: Transaction) -> ShareLot:
        adjustment = self.splits.adjustment_for(tx.symbol, tx.date, self.lots.split_horizon)
        lot = lot_for_purchase(tx, adjustment)
        self.lots.add(lot)
        return lot

    def sell_terms(self, symbol: str, quantity: Decimal, price: Decimal, sell_date: date) -> tuple[Decimal, Decimal]:
        """Express a sell in the same split-adjusted terms as the store's lots."""

        adjustment = self.splits.adjustment_for(symbol, sell_date, self.lots.split_horizon)
        return adjustment.quantity(quantity), adjustment.price(price)

    def plan(self, symbol: str, quantity: Decimal, price: Decimal, sell_date: date) -> SaleAllocation:
        """Compute the FIFO allocation of a sell without touching the store."""

        symbol = symbol.upper()
        adj_quantity, adj_price = self.sell_terms(symbol, quantity, price, sell_date)
        allocation = SaleAllocation(symbol=symbol, quantity=adj_quantity, price=adj_price, sell_date=sell_date)
        remaining = adj_quantity
        for lot in self.lots.open_lots(symbol):
            if remaining <= 0:
                break
            shares = min(remaining, lot.remaining_quantity)
            cost_basis = shares * lot.cost_per_share
            proceeds = shares * adj_price
            allocation.lot_sales.append(
                LotSale(
                    lot_id=lot.id,
                    purchase_transaction_id=lot.purchase_transaction_id,
                    purchase_date=lot.purchase_date,
                    shares_from_lot=shares,
                    cost_per_share=lot.cost_per_share,
                    cost_basis=cost_basis,
                    sale_proceeds=proceeds,
                    pnl=proceeds - cost_basis,
                )
            )
            remaining -= shares
        allocation.shortfall = max(remaining, ZERO)
        return allocation

    def allocate(
        self,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        sell_date: date,
        policy: AllocationPolicy = AllocationPolicy.STRICT,
    ) -> SaleAllocation:
        """Consume lots for a sell.

        Under ``STRICT`` an oversell fails without mutating anything. Under
        ``ALLOW_PARTIAL`` everything available is consumed and the missing
        shares are reported as ``shortfall``.
        """

        allocation = self.plan(symbol, quantity, price, sell_date)
        if allocation.shortfall > 0 and policy is AllocationPolicy.STRICT:
            available = allocation.shares_allocated
            allocation.success = False
            allocation.lot_sales = []
            allocation.error = EngineError(
                ErrorCode.INSUFFICIENT_SHARES,
                f"Cannot sell {allocation.quantity} shares of {allocation.symbol}. "
                f"Only {available} shares available.",
            )
            return allocation

        lots_by_id = {lot.id: lot for lot in self.lots.open_lots(allocation.symbol)}
        for sale in allocation.lot_sales:
            lots_by_id[sale.lot_id].consume(sale.shares_from_lot)
        self.lots.prune()
        if allocation.shortfall > 0:
            logger.warning(
                "Partial allocation for %s on %s: %s shares missing",
                allocation.symbol,
                sell_date,
                allocation.shortfall,
            )
        return allocation


__all__ = ["AllocationPolicy", "LotStore", "FifoAllocator", "lot_for_purchase"]
