"""Accounting engine: ledger replay, FIFO lots, wash sales and splits.

The engine owns one ledger, one split registry and the live lot store
derived from them. Transactions are stored as traded; every lot is a
split-adjusted view rebuilt from the ledger, so applying or removing a
split never rewrites a recorded trade.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Sequence

from .config import EngineConfig
from .errors import EngineError, ErrorCode, TransactionValidationError
from .ledger import Ledger, parse_trade_date
from .lots import AllocationPolicy, FifoAllocator, LotStore
from .models import (
    MAX_DECIMAL_PLACES,
    ZERO,
    ImportReport,
    Position,
    RebuildIssue,
    RebuildReport,
    RecordResult,
    SaleAllocation,
    ShareLot,
    SplitApplication,
    StockSplit,
    Transaction,
    TransactionAnalysis,
    YearStats,
    decimal_places,
)
from .persistence import EngineState, InMemoryStateStore, StateStore
from .portfolio import project_positions
from .splits import SplitRegistry
from .wash_sale import WashSaleEvaluator

logger = logging.getLogger(__name__)


class AccountingEngine:
    """One user's trade ledger with FIFO lots and wash-sale analysis.

    Mutations are synchronous and expected to come from a single writer.
    Every successful mutation is written back through ``store``.
    """

    def __init__(
        self,
        store: StateStore | None = None,
        *,
        config: EngineConfig | None = None,
        clock: Callable[[], date] | None = None,
        autoload: bool = True,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store if store is not None else InMemoryStateStore()
        self._clock = clock or date.today
        self._batch_depth = 0
        self._dirty = False
        self.ledger = Ledger(default_account=self.config.default_account)
        self.splits = SplitRegistry(duplicate_window=timedelta(hours=self.config.duplicate_split_window_hours))
        self.lots = LotStore()
        self.allocator = FifoAllocator(self.lots, self.splits)
        self.evaluator = WashSaleEvaluator(
            window_days=self.config.wash_sale_window_days,
            safe_offset_days=self.config.safe_to_sell_offset_days,
        )
        self.last_rebuild: RebuildReport | None = None
        if autoload:
            self.load()

    # Persistence

    def state(self) -> EngineState:
        return EngineState(
            transactions=self.ledger.ordered(),
            share_lots=self.lots.snapshot(),
            stock_splits=self.splits.all(),
        )

    def load(self) -> RebuildReport:
        """Read state from the store and rebuild lots from the loaded ledger.

        Persisted lots are a cache of the derived view; the ledger and split
        registry are authoritative.
        """

        state = self.store.load()
        self._reset(state.transactions, state.stock_splits)
        report = self.rebuild()
        if state.share_lots and len(state.share_lots) != len(self.lots):
            logger.warning(
                "Stored lots (%d) differ from rebuilt lots (%d); using rebuilt state",
                len(state.share_lots),
                len(self.lots),
            )
        logger.info(
            "Loaded %d transactions and %d splits",
            len(self.ledger),
            len(self.splits),
        )
        return report

    def save(self) -> None:
        self.store.save(self.state())
        self._dirty = False

    def _persist(self) -> None:
        if self._batch_depth:
            self._dirty = True
            return
        self.save()

    @contextmanager
    def batch(self) -> Iterator["AccountingEngine"]:
        """Defer saving until the outermost batch exits."""

        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self.save()

    def _reset(self, transactions: Iterable[Transaction], splits: Iterable[StockSplit]) -> None:
        self.ledger.clear()
        for tx in transactions:
            self.ledger.append(tx)
        self.splits.clear()
        for split in splits:
            self.splits.put(split)
        self.lots.clear()

    def replace_state(self, state: EngineState) -> RebuildReport:
        """Swap in a complete ledger and split set (e.g. restoring a backup)."""

        self._reset(state.transactions, state.stock_splits)
        report = self.rebuild()
        self._persist()
        return report

    def clear(self) -> None:
        self._reset((), ())
        self.last_rebuild = None
        self._persist()
        logger.info("Cleared all transactions, lots and splits")

    # Replay

    def _replay(self, transactions: Sequence[Transaction], *, split_horizon: date | None = None) -> tuple[LotStore, RebuildReport]:
        store = LotStore(split_horizon=split_horizon)
        allocator = FifoAllocator(store, self.splits)
        report = RebuildReport()
        for tx in sorted(transactions, key=Transaction.replay_key):
            if tx.is_buy:
                allocator.open_purchase(tx)
                report.lots_created += 1
                continue
            allocation = allocator.allocate(tx.symbol, tx.quantity, tx.price, tx.date, AllocationPolicy.ALLOW_PARTIAL)
            report.sells_replayed += 1
            if allocation.shortfall > 0:
                report.issues.append(
                    RebuildIssue(
                        transaction_id=tx.id,
                        symbol=tx.symbol,
                        date=tx.date,
                        shortfall=allocation.shortfall,
                        message=(
                            f"Sell of {allocation.quantity} {tx.symbol} on {tx.date.isoformat()} "
                            f"exceeds available shares by {allocation.shortfall}"
                        ),
                    )
                )
        report.open_lots = len(store)
        return store, report

    def rebuild(self) -> RebuildReport:
        """Regenerate the live lot store by replaying the whole ledger."""

        store, report = self._replay(self.ledger.replay_order())
        self.lots.clear()
        self.lots.split_horizon = None
        for lot in store:
            self.lots.add(lot)
        for issue in report.issues:
            logger.warning("Rebuild inconsistency for transaction %s: %s", issue.transaction_id, issue.message)
        logger.info(
            "Rebuilt %d open lots from %d buys and %d sells (%d issues)",
            report.open_lots,
            report.lots_created,
            report.sells_replayed,
            len(report.issues),
        )
        self.last_rebuild = report
        return report

    def lots_as_of(self, symbol: str, on: Any) -> list[ShareLot]:
        """Lots of ``symbol`` walking into ``on``: only trades dated strictly before it.

        Quantities and costs reflect splits dated on or before ``on`` and
        nothing later.
        """

        target = parse_trade_date(on)
        store, _ = self._replay(self.ledger.replay_order(symbol, before=target), split_horizon=target)
        return store.open_lots(symbol)

    # Recording

    def record_transaction(self, raw: Any, *, force_import: bool = False) -> RecordResult:
        """Validate and record one trade.

        Sells are FIFO-allocated; an oversell fails unless ``force_import``
        is set, in which case the shortfall is recorded and wash-sale
        evaluation is skipped.
        """

        try:
            tx = self.ledger.normalize(raw)
        except TransactionValidationError as exc:
            logger.info("Rejected transaction: %s", exc)
            return RecordResult(success=False, error=exc.as_error())
        if tx.id in self.ledger:
            return RecordResult(
                success=False,
                error=EngineError(ErrorCode.VALIDATION_ERROR, f"Transaction {tx.id} already recorded"),
            )

        latest = self.ledger.is_latest(tx)
        if tx.is_buy:
            self.ledger.append(tx)
            if latest:
                self.allocator.open_purchase(tx)
            else:
                self.rebuild()
            self._persist()
            return RecordResult(success=True, transaction=tx)

        policy = AllocationPolicy.ALLOW_PARTIAL if force_import else AllocationPolicy.STRICT
        if latest:
            allocator = self.allocator
        else:
            store, _ = self._replay(self.ledger.preceding(tx))
            allocator = FifoAllocator(store, self.splits)
        lots_before = allocator.lots.open_lots(tx.symbol)
        allocation = allocator.allocate(tx.symbol, tx.quantity, tx.price, tx.date, policy)
        if not allocation.success:
            logger.info("Rejected sell of %s %s on %s: %s", tx.quantity, tx.symbol, tx.date, allocation.error.message)
            return RecordResult(
                success=False,
                allocation=allocation,
                shortfall=allocation.shortfall,
                error=allocation.error,
            )
        if not latest and policy is AllocationPolicy.STRICT and self._introduces_shortfall(tx):
            return RecordResult(
                success=False,
                allocation=allocation,
                error=EngineError(
                    ErrorCode.INSUFFICIENT_SHARES,
                    f"Selling {tx.quantity} {tx.symbol} on {tx.date.isoformat()} would leave later sells without shares.",
                ),
            )

        outcome = None
        if not force_import:
            history = list(self.ledger) + [tx]
            self.evaluator.evaluate_allocation(allocation, lots_before, history)
            outcome = self.evaluator.summarize(allocation, history, warn=True)

        self.ledger.append(tx)
        if not latest:
            self.rebuild()
        self._persist()
        if allocation.shortfall > 0:
            logger.warning(
                "Forced import of %s %s on %s with shortfall %s",
                tx.quantity,
                tx.symbol,
                tx.date,
                allocation.shortfall,
            )
        return RecordResult(
            success=True,
            transaction=tx,
            allocation=allocation,
            wash_sale=outcome,
            shortfall=allocation.shortfall,
        )

    def check_transaction(self, raw: Any) -> RecordResult:
        """Preview a prospective trade (live entry) without recording it."""

        try:
            tx = self.ledger.normalize(raw)
        except TransactionValidationError as exc:
            return RecordResult(success=False, error=exc.as_error())
        if tx.is_buy:
            return RecordResult(success=True, transaction=tx)

        if self.ledger.is_latest(tx):
            store = LotStore(self.lots.snapshot())
        else:
            store, _ = self._replay(self.ledger.preceding(tx))
        allocator = FifoAllocator(store, self.splits)
        lots_before = store.open_lots(tx.symbol)
        allocation = allocator.allocate(tx.symbol, tx.quantity, tx.price, tx.date)
        if not allocation.success:
            return RecordResult(
                success=False,
                transaction=tx,
                allocation=allocation,
                shortfall=allocation.shortfall,
                error=allocation.error,
            )
        history = list(self.ledger) + [tx]
        self.evaluator.evaluate_allocation(allocation, lots_before, history)
        outcome = self.evaluator.summarize(allocation, history, warn=True)
        return RecordResult(success=True, transaction=tx, allocation=allocation, wash_sale=outcome)

    def _introduces_shortfall(self, tx: Transaction) -> bool:
        """True when inserting ``tx`` leaves any later sell shorter than it already was."""

        existing = self.ledger.replay_order(tx.symbol)
        _, before = self._replay(existing)
        _, after = self._replay(existing + [tx])
        previous = {issue.transaction_id: issue.shortfall for issue in before.issues}
        return any(issue.shortfall > previous.get(issue.transaction_id, ZERO) for issue in after.issues)

    def delete_transaction(self, transaction_id: str) -> bool:
        tx = self.ledger.remove(transaction_id)
        if tx is None:
            return False
        self.rebuild()
        self._persist()
        logger.info("Deleted transaction %s (%s %s)", tx.id, tx.type.value, tx.symbol)
        return True

    def import_transactions(self, records: Iterable[Any], *, force: bool = True) -> ImportReport:
        """Bulk-load normalized records, oldest first, skipping duplicates."""

        records = list(records)
        report = ImportReport(received=len(records))
        candidates: list[Transaction] = []
        for raw in records:
            try:
                candidates.append(self.ledger.normalize(raw))
            except TransactionValidationError as exc:
                report.invalid += 1
                report.errors.append(exc.as_error())
        candidates.sort(key=Transaction.replay_key)

        with self.batch():
            for tx in candidates:
                if self._is_duplicate(tx):
                    report.duplicates += 1
                    continue
                result = self.record_transaction(tx, force_import=force)
                if not result.success:
                    report.rejected += 1
                    if result.error is not None:
                        report.errors.append(result.error)
                    continue
                report.imported += 1
                report.transactions.append(result.transaction)
                if result.shortfall > 0:
                    report.shortfalls += 1
        logger.info(
            "Imported %d of %d records (%d duplicates, %d invalid, %d rejected, %d shortfalls)",
            report.imported,
            report.received,
            report.duplicates,
            report.invalid,
            report.rejected,
            report.shortfalls,
        )
        return report

    def _is_duplicate(self, tx: Transaction) -> bool:
        tolerance = Decimal(self.config.duplicate_price_tolerance)
        return any(
            other.symbol == tx.symbol
            and other.type is tx.type
            and other.quantity == tx.quantity
            and abs(other.price - tx.price) < tolerance
            and other.date == tx.date
            for other in self.ledger
        )

    # Queries

    def transactions(self, symbol: str | None = None) -> list[Transaction]:
        return self.ledger.ordered(symbol)

    def current_positions(self) -> Dict[str, Position]:
        return project_positions(self.lots)

    def safe_to_sell_date(self, symbol: str) -> Optional[date]:
        buys = [tx for tx in self.ledger.ordered(symbol) if tx.is_buy]
        if not buys:
            return None
        return self.evaluator.safe_date(max(tx.date for tx in buys))

    def transaction_wash_sale_status(self, transaction: Transaction | str, *, as_of: date | None = None) -> TransactionAnalysis:
        """FIFO and wash-sale analysis of a recorded sell.

        Lots come from replaying only the trades that precede the sell.
        ``as_of`` limits which trades count as known when scanning for
        replacement purchases; by default everything recorded so far is.
        """

        tx = self._resolve(transaction)
        if not tx.is_sell:
            return TransactionAnalysis(transaction=tx)
        store, _ = self._replay(self.ledger.preceding(tx))
        lots_before = store.open_lots(tx.symbol)
        allocation = FifoAllocator(store, self.splits).allocate(
            tx.symbol, tx.quantity, tx.price, tx.date, AllocationPolicy.ALLOW_PARTIAL
        )
        history = [other for other in self.ledger if as_of is None or other.date <= as_of]
        self.evaluator.evaluate_allocation(allocation, lots_before, history)
        outcome = self.evaluator.summarize(allocation, history)
        return TransactionAnalysis(transaction=tx, allocation=allocation, outcome=outcome)

    def _resolve(self, transaction: Transaction | str) -> Transaction:
        if isinstance(transaction, Transaction):
            return transaction
        tx = self.ledger.get(transaction)
        if tx is None:
            raise KeyError(f"Unknown transaction {transaction}")
        return tx

    def year_stats(self, year: int) -> YearStats:
        stats = YearStats(year=year)
        for tx in self.ledger.ordered():
            if tx.date.year != year:
                continue
            stats.transaction_count += 1
            if not tx.is_sell:
                continue
            stats.sell_count += 1
            allocation = self.transaction_wash_sale_status(tx).allocation
            if allocation is None or not allocation.lot_sales:
                logger.warning("No lots available for sell %s of %s on %s", tx.id, tx.symbol, tx.date)
                continue
            _accumulate(stats, allocation)
        return stats

    def today(self) -> date:
        return self._clock()

    def year_to_date_stats(self) -> YearStats:
        return self.year_stats(self.today().year)

    def years(self) -> list[int]:
        return sorted({tx.date.year for tx in self.ledger}, reverse=True)

    # Splits

    def apply_split(self, symbol: str, split_date: Any, ratio: Any, *, split_id: str | None = None) -> SplitApplication:
        if split_id is not None and split_id in self.splits:
            return SplitApplication(success=True, split=self.splits.get(split_id), already_applied=True)
        split_on = parse_trade_date(split_date)
        try:
            ratio_value = Decimal(str(ratio))
        except InvalidOperation:
            ratio_value = ZERO
        if (
            not symbol
            or not symbol.strip()
            or not ratio_value.is_finite()
            or ratio_value <= 0
            or decimal_places(ratio_value) > MAX_DECIMAL_PLACES
        ):
            return SplitApplication(
                success=False,
                error=EngineError(ErrorCode.INVALID_SPLIT, f"Invalid split {symbol!r} ratio {ratio!r}"),
            )
        split = self.splits.add(symbol.strip(), split_on, ratio_value, split_id=split_id)
        if split is None:
            return SplitApplication(
                success=False,
                error=EngineError(
                    ErrorCode.DUPLICATE_SPLIT,
                    f"{symbol.upper()} already has a split within "
                    f"{self.config.duplicate_split_window_hours} hours of {split_on.isoformat()}",
                ),
            )
        self.rebuild()
        result = SplitApplication(
            success=True,
            split=split,
            lots_affected=self._lots_with_split(split.id),
            transactions_affected=self._transactions_before(split),
        )
        self._persist()
        logger.info(
            "Applied %s split of %s on %s: %d lots, %d transactions affected",
            split.ratio,
            split.symbol,
            split.split_date,
            result.lots_affected,
            result.transactions_affected,
        )
        return result

    def undo_split(self, split_id: str) -> SplitApplication:
        split = self.splits.get(split_id)
        if split is None:
            return SplitApplication(
                success=False,
                error=EngineError(ErrorCode.UNKNOWN_SPLIT, f"Unknown split {split_id}"),
            )
        lots_affected = self._lots_with_split(split.id)
        self.splits.remove(split.id)
        self.rebuild()
        self._persist()
        logger.info("Removed split %s of %s on %s", split.id, split.symbol, split.split_date)
        return SplitApplication(
            success=True,
            split=split,
            lots_affected=lots_affected,
            transactions_affected=self._transactions_before(split),
        )

    def add_split(self, symbol: str, split_date: Any, ratio: Any) -> bool:
        return self.apply_split(symbol, split_date, ratio).success

    def remove_split(self, split_id: str) -> bool:
        return self.undo_split(split_id).success

    def list_splits(self, symbol: str | None = None) -> list[StockSplit]:
        if symbol is None:
            return self.splits.all()
        return self.splits.for_symbol(symbol)

    def _lots_with_split(self, split_id: str) -> int:
        return sum(1 for lot in self.lots if split_id in lot.applied_splits)

    def _transactions_before(self, split: StockSplit) -> int:
        return sum(1 for tx in self.ledger.ordered(split.symbol) if tx.date < split.split_date)


def _accumulate(stats: YearStats, allocation: SaleAllocation) -> None:
    recognized = allocation.recognized_pnl
    if recognized >= 0:
        stats.total_gains += recognized
    else:
        stats.total_losses += -recognized
    if allocation.is_wash_sale:
        stats.wash_sale_count += 1
        stats.disallowed_losses += allocation.disallowed_loss


__all__ = ["AccountingEngine"]
