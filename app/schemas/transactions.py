"""Pydantic schemas for recording and analysing trades."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from app.models import TRANSACTION_TYPES
from washsafe.errors import EngineError
from washsafe.models import (
    ImportReport,
    LotSale,
    RecordResult,
    SaleAllocation,
    Transaction,
    TransactionAnalysis,
    WashSaleOutcome,
)


class TransactionCreateRequest(BaseModel):
    symbol: str = Field(..., examples=["AAPL"])
    type: str = Field(..., pattern="(?i)^(" + "|".join(TRANSACTION_TYPES) + ")$")
    quantity: Decimal
    price: Decimal
    date: dt.date
    account: str | None = Field(default=None, description="Account or broker reference")
    id: str | None = Field(default=None, description="Client-supplied id; generated when omitted")

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    class Config:
        json_schema_extra = {
            "example": {
                "symbol": "AAPL",
                "type": "sell",
                "quantity": 100,
                "price": 150.0,
                "date": "2024-02-10",
                "account": "Broker-1",
            }
        }


class TransactionSchema(BaseModel):
    id: str
    symbol: str
    type: str
    quantity: Decimal
    price: Decimal
    total: Decimal
    date: dt.date
    account: str
    created_at: dt.datetime | None = None

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionSchema":
        return cls(
            id=tx.id,
            symbol=tx.symbol,
            type=tx.type.value,
            quantity=tx.quantity,
            price=tx.price,
            total=tx.total,
            date=tx.date,
            account=tx.account,
            created_at=tx.created_at,
        )


class ErrorSchema(BaseModel):
    code: str
    message: str

    @classmethod
    def from_domain(cls, error: EngineError) -> "ErrorSchema":
        return cls(code=error.code.value, message=error.message)


class LotSaleSchema(BaseModel):
    lot_id: str
    purchase_transaction_id: str
    purchase_date: dt.date
    shares_from_lot: Decimal
    cost_per_share: Decimal
    cost_basis: Decimal
    sale_proceeds: Decimal
    pnl: Decimal
    is_wash_sale: bool
    disallowed_loss: Decimal

    @classmethod
    def from_domain(cls, sale: LotSale) -> "LotSaleSchema":
        return cls(
            lot_id=sale.lot_id,
            purchase_transaction_id=sale.purchase_transaction_id,
            purchase_date=sale.purchase_date,
            shares_from_lot=sale.shares_from_lot,
            cost_per_share=sale.cost_per_share,
            cost_basis=sale.cost_basis,
            sale_proceeds=sale.sale_proceeds,
            pnl=sale.pnl,
            is_wash_sale=sale.is_wash_sale,
            disallowed_loss=sale.disallowed_loss,
        )


class AllocationSchema(BaseModel):
    symbol: str
    quantity: Decimal
    price: Decimal
    sell_date: dt.date
    shares_allocated: Decimal
    shortfall: Decimal
    cost_basis: Decimal
    proceeds: Decimal
    pnl: Decimal
    disallowed_loss: Decimal
    recognized_pnl: Decimal
    lot_sales: list[LotSaleSchema]

    @classmethod
    def from_domain(cls, allocation: SaleAllocation) -> "AllocationSchema":
        return cls(
            symbol=allocation.symbol,
            quantity=allocation.quantity,
            price=allocation.price,
            sell_date=allocation.sell_date,
            shares_allocated=allocation.shares_allocated,
            shortfall=allocation.shortfall,
            cost_basis=allocation.cost_basis,
            proceeds=allocation.proceeds,
            pnl=allocation.pnl,
            disallowed_loss=allocation.disallowed_loss,
            recognized_pnl=allocation.recognized_pnl,
            lot_sales=[LotSaleSchema.from_domain(sale) for sale in allocation.lot_sales],
        )


class WashSaleOutcomeSchema(BaseModel):
    type: str
    symbol: str
    sell_date: dt.date
    loss: Decimal
    disallowed_loss: Decimal
    window_start: dt.date
    window_end: dt.date
    conflicting_purchases: list[TransactionSchema]
    recent_purchases: list[TransactionSchema]
    safe_date: dt.date | None = None
    message: str

    @classmethod
    def from_domain(cls, outcome: WashSaleOutcome) -> "WashSaleOutcomeSchema":
        return cls(
            type=outcome.type.value,
            symbol=outcome.symbol,
            sell_date=outcome.sell_date,
            loss=outcome.loss,
            disallowed_loss=outcome.disallowed_loss,
            window_start=outcome.window_start,
            window_end=outcome.window_end,
            conflicting_purchases=[TransactionSchema.from_domain(tx) for tx in outcome.conflicting_purchases],
            recent_purchases=[TransactionSchema.from_domain(tx) for tx in outcome.recent_purchases],
            safe_date=outcome.safe_date,
            message=outcome.message,
        )


class RecordResultSchema(BaseModel):
    success: bool
    transaction: TransactionSchema | None = None
    allocation: AllocationSchema | None = None
    wash_sale: WashSaleOutcomeSchema | None = None
    shortfall: Decimal = Decimal("0")
    error: ErrorSchema | None = None

    @classmethod
    def from_domain(cls, result: RecordResult) -> "RecordResultSchema":
        return cls(
            success=result.success,
            transaction=TransactionSchema.from_domain(result.transaction) if result.transaction else None,
            allocation=AllocationSchema.from_domain(result.allocation) if result.allocation else None,
            wash_sale=WashSaleOutcomeSchema.from_domain(result.wash_sale) if result.wash_sale else None,
            shortfall=result.shortfall,
            error=ErrorSchema.from_domain(result.error) if result.error else None,
        )


class TransactionAnalysisSchema(BaseModel):
    transaction: TransactionSchema
    is_wash_sale: bool
    pnl: Decimal
    disallowed_loss: Decimal
    allocation: AllocationSchema | None = None
    outcome: WashSaleOutcomeSchema | None = None

    @classmethod
    def from_domain(cls, analysis: TransactionAnalysis) -> "TransactionAnalysisSchema":
        return cls(
            transaction=TransactionSchema.from_domain(analysis.transaction),
            is_wash_sale=analysis.is_wash_sale,
            pnl=analysis.pnl,
            disallowed_loss=analysis.disallowed_loss,
            allocation=AllocationSchema.from_domain(analysis.allocation) if analysis.allocation else None,
            outcome=WashSaleOutcomeSchema.from_domain(analysis.outcome) if analysis.outcome else None,
        )


class ImportRequest(BaseModel):
    records: list[dict[str, Any]]
    force: bool = Field(default=True, description="Record oversells with a shortfall instead of rejecting them")


class ImportReportSchema(BaseModel):
    received: int
    imported: int
    duplicates: int
    invalid: int
    rejected: int
    skipped: int
    shortfalls: int
    transactions: list[TransactionSchema]
    errors: list[ErrorSchema]

    @classmethod
    def from_domain(cls, report: ImportReport) -> "ImportReportSchema":
        return cls(
            received=report.received,
            imported=report.imported,
            duplicates=report.duplicates,
            invalid=report.invalid,
            rejected=report.rejected,
            skipped=report.skipped,
            shortfalls=report.shortfalls,
            transactions=[TransactionSchema.from_domain(tx) for tx in report.transactions],
            errors=[ErrorSchema.from_domain(error) for error in report.errors],
        )


__all__ = [
    "AllocationSchema",
    "ErrorSchema",
    "ImportReportSchema",
    "ImportRequest",
    "LotSaleSchema",
    "RecordResultSchema",
    "TransactionAnalysisSchema",
    "TransactionCreateRequest",
    "TransactionSchema",
    "WashSaleOutcomeSchema",
]
