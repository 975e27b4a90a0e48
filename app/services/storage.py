"""SQLAlchemy-backed implementation of the engine's load/save boundary."""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models import ShareLotRecord, StockSplitRecord, TransactionRecord
from washsafe.models import DEFAULT_ACCOUNT, ShareLot, StockSplit, Transaction, TransactionType
from washsafe.persistence import EngineState

logger = logging.getLogger(__name__)


def _decimal(value: object) -> Decimal:
    return Decimal(str(value))


def _trimmed(value: object) -> Decimal:
    """Drop the padding the column scale adds, keeping integers integral."""

    number = _decimal(value)
    if number == number.to_integral_value():
        return number.quantize(Decimal("1"))
    return number.normalize()


def _to_transaction(row: TransactionRecord) -> Transaction:
    return Transaction(
        id=row.id,
        symbol=row.symbol,
        type=TransactionType(row.type),
        quantity=_decimal(row.qty),
        price=_trimmed(row.price),
        date=row.trade_date,
        account=row.account or DEFAULT_ACCOUNT,
        created_at=row.created_at,
    )


def _to_lot(row: ShareLotRecord) -> ShareLot:
    return ShareLot(
        id=row.id,
        symbol=row.symbol,
        purchase_date=row.purchase_date,
        original_quantity=_decimal(row.original_quantity),
        remaining_quantity=_decimal(row.remaining_quantity),
        cost_per_share=_decimal(row.cost_per_share),
        purchase_transaction_id=row.purchase_transaction_id,
        account=row.account or DEFAULT_ACCOUNT,
        applied_splits=tuple(row.applied_splits or ()),
    )


def _to_split(row: StockSplitRecord) -> StockSplit:
    return StockSplit(
        id=row.id,
        symbol=row.symbol,
        split_date=row.split_date,
        ratio=_trimmed(row.ratio),
        applied_at=row.applied_at,
    )


class SqlAlchemyStateStore:
    """Persists the full engine state; ``save`` replaces what was stored before."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self) -> EngineState:
        with self._session_factory() as session:
            transactions = session.execute(
                select(TransactionRecord).order_by(TransactionRecord.trade_date, TransactionRecord.id)
            ).scalars().all()
            lots = session.execute(select(ShareLotRecord).order_by(ShareLotRecord.position)).scalars().all()
            splits = session.execute(
                select(StockSplitRecord).order_by(StockSplitRecord.symbol, StockSplitRecord.split_date)
            ).scalars().all()
            state = EngineState(
                transactions=[_to_transaction(row) for row in transactions],
                share_lots=[_to_lot(row) for row in lots],
                stock_splits=[_to_split(row) for row in splits],
            )
        logger.debug(
            "Loaded %d transactions, %d lots, %d splits from database",
            len(state.transactions),
            len(state.share_lots),
            len(state.stock_splits),
        )
        return state

    def save(self, state: EngineState) -> None:
        with self._session_factory() as session:
            try:
                session.execute(delete(ShareLotRecord))
                session.execute(delete(StockSplitRecord))
                session.execute(delete(TransactionRecord))
                session.add_all(
                    TransactionRecord(
                        id=tx.id,
                        symbol=tx.symbol,
                        type=tx.type.value,
                        qty=tx.quantity,
                        price=tx.price,
                        trade_date=tx.date,
                        account=tx.account,
                        created_at=tx.created_at,
                    )
                    for tx in state.transactions
                )
                session.add_all(
                    ShareLotRecord(
                        id=lot.id,
                        position=position,
                        symbol=lot.symbol,
                        purchase_date=lot.purchase_date,
                        original_quantity=lot.original_quantity,
                        remaining_quantity=lot.remaining_quantity,
                        cost_per_share=lot.cost_per_share,
                        purchase_transaction_id=lot.purchase_transaction_id,
                        account=lot.account,
                        applied_splits=list(lot.applied_splits),
                    )
                    for position, lot in enumerate(state.share_lots)
                )
                session.add_all(
                    StockSplitRecord(
                        id=split.id,
                        symbol=split.symbol,
                        split_date=split.split_date,
                        ratio=split.ratio,
                        applied_at=split.applied_at,
                    )
                    for split in state.stock_splits
                )
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                logger.exception("Failed to persist engine state")
                raise


__all__ = ["SqlAlchemyStateStore"]
