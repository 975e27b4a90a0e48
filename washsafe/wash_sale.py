"""Wash-sale detection for lot-sales and whole sell transactions.

A loss on a lot-sale is disallowed when a buy of the same symbol lands
within the window around the sale date (30 days either side, inclusive).
The evaluator only ever looks at the history the caller hands it, so the
caller decides how much of the ledger was "known" at the time analysed.
Same-ticker equality is the only notion of "substantially identical".
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from .models import (
    ZERO,
    LotSaleState,
    OutcomeType,
    SaleAllocation,
    ShareLot,
    Transaction,
    WashSaleCheck,
    WashSaleOutcome,
)

logger = logging.getLogger(__name__)


class WashSaleEvaluator:
    def __init__(self, window_days: int = 30, safe_offset_days: int = 31) -> None:
        self.window_days = window_days
        self.safe_offset_days = safe_offset_days

    def window(self, sell_date: date) -> tuple[date, date]:
        span = timedelta(days=self.window_days)
        return sell_date - span, sell_date + span

    def safe_date(self, from_date: date) -> date:
        return from_date + timedelta(days=self.safe_offset_days)

    def evaluate(
        self,
        lot: ShareLot,
        shares_sold: Decimal,
        sell_date: date,
        pnl: Decimal,
        history: Iterable[Transaction],
    ) -> WashSaleCheck:
        """Classify one lot-sale.

        The buy that opened ``lot`` is not a replacement purchase for itself.
        """

        if pnl >= 0:
            return WashSaleCheck(state=LotSaleState.NOT_A_LOSS)
        start, end = self.window(sell_date)
        conflicts = tuple(
            tx
            for tx in history
            if tx.is_buy
            and tx.symbol == lot.symbol
            and tx.id != lot.purchase_transaction_id
            and start <= tx.date <= end
        )
        if not conflicts:
            return WashSaleCheck(state=LotSaleState.LOSS_NO_CONFLICT, window_start=start, window_end=end)
        logger.debug(
            "Wash sale on lot %s (%s shares sold %s): %d conflicting purchase(s)",
            lot.id,
            shares_sold,
            sell_date,
            len(conflicts),
        )
        return WashSaleCheck(
            state=LotSaleState.LOSS_WITH_CONFLICT,
            disallowed_loss=abs(pnl),
            conflicting_purchases=conflicts,
            window_start=start,
            window_end=end,
        )

    def recent_purchases(self, symbol: str, sell_date: date, history: Iterable[Transaction]) -> tuple[Transaction, ...]:
        """Buys of ``symbol`` in the days leading up to (not including) ``sell_date``."""

        start, _ = self.window(sell_date)
        return tuple(tx for tx in history if tx.is_buy and tx.symbol == symbol and start <= tx.date < sell_date)

    def evaluate_allocation(
        self,
        allocation: SaleAllocation,
        lots: Sequence[ShareLot],
        history: Sequence[Transaction],
    ) -> SaleAllocation:
        """Attach a :class:`WashSaleCheck` to every lot-sale of ``allocation``."""

        lots_by_id = {lot.id: lot for lot in lots}
        for sale in allocation.lot_sales:
            lot = lots_by_id[sale.lot_id]
            sale.wash_sale = self.evaluate(lot, sale.shares_from_lot, allocation.sell_date, sale.pnl, history)
        return allocation

    def summarize(
        self,
        allocation: SaleAllocation,
        history: Sequence[Transaction],
        *,
        warn: bool = False,
    ) -> WashSaleOutcome | None:
        """Merge lot-level checks into the transaction-level outcome.

        ``warn`` enables the advisory mode used for live entry: a loss with
        no conflict yet, but with purchases in the prior window, yields a
        warning carrying the date after which buying back is safe.
        """

        start, end = self.window(allocation.sell_date)
        loss = sum((-sale.pnl for sale in allocation.lot_sales if sale.pnl < 0), ZERO)
        if allocation.is_wash_sale:
            conflicts: dict[str, Transaction] = {}
            for sale in allocation.lot_sales:
                if sale.is_wash_sale:
                    for tx in sale.wash_sale.conflicting_purchases:
                        conflicts.setdefault(tx.id, tx)
            disallowed = allocation.disallowed_loss
            return WashSaleOutcome(
                type=OutcomeType.VIOLATION,
                symbol=allocation.symbol,
                sell_date=allocation.sell_date,
                loss=loss,
                disallowed_loss=disallowed,
                window_start=start,
                window_end=end,
                conflicting_purchases=tuple(sorted(conflicts.values(), key=Transaction.ledger_key)),
                safe_date=self.safe_date(allocation.sell_date),
                message=(
                    f"Wash sale detected: {allocation.symbol} was purchased within "
                    f"{self.window_days} days of this sale; {disallowed:.2f} of loss is disallowed."
                ),
            )
        if not warn or not any(sale.pnl < 0 for sale in allocation.lot_sales):
            return None
        recent = self.recent_purchases(allocation.symbol, allocation.sell_date, history)
        if not recent:
            return None
        safe = self.safe_date(allocation.sell_date)
        return WashSaleOutcome(
            type=OutcomeType.WARNING,
            symbol=allocation.symbol,
            sell_date=allocation.sell_date,
            loss=loss,
            disallowed_loss=ZERO,
            window_start=start,
            window_end=end,
            recent_purchases=recent,
            safe_date=safe,
            message=f"Do not buy {allocation.symbol} again before {safe.isoformat()} to keep this loss deductible.",
        )


__all__ = ["WashSaleEvaluator"]
