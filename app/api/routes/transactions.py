"""Trade recording, preview and per-transaction wash-sale endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.api.dependencies import get_engine
from app.api.errors import http_error
from app.schemas import (
    ImportReportSchema,
    ImportRequest,
    RecordResultSchema,
    TransactionAnalysisSchema,
    TransactionCreateRequest,
    TransactionSchema,
)
from washsafe import AccountingEngine
from washsafe.errors import EngineError, ErrorCode

router = APIRouter()


@router.post("", response_model=RecordResultSchema, status_code=status.HTTP_201_CREATED)
async def post_transaction(
    payload: TransactionCreateRequest,
    force_import: bool = Query(default=False, description="Record oversells instead of rejecting them"),
    engine: AccountingEngine = Depends(get_engine),
) -> RecordResultSchema:
    result = engine.record_transaction(payload.to_record(), force_import=force_import)
    if not result.success:
        raise http_error(result.error, shortfall=result.shortfall)
    return RecordResultSchema.from_domain(result)


@router.post("/check", response_model=RecordResultSchema)
async def check_transaction(
    payload: TransactionCreateRequest,
    engine: AccountingEngine = Depends(get_engine),
) -> RecordResultSchema:
    return RecordResultSchema.from_domain(engine.check_transaction(payload.to_record()))


@router.get("", response_model=list[TransactionSchema])
async def get_transactions(
    symbol: str | None = Query(default=None),
    engine: AccountingEngine = Depends(get_engine),
) -> list[TransactionSchema]:
    selected = symbol.strip().upper() if symbol else None
    return [TransactionSchema.from_domain(tx) for tx in engine.transactions(selected)]


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: str,
    engine: AccountingEngine = Depends(get_engine),
) -> Response:
    if not engine.delete_transaction(transaction_id):
        raise http_error(EngineError(ErrorCode.UNKNOWN_TRANSACTION, f"Unknown transaction {transaction_id}"))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{transaction_id}/wash-sale", response_model=TransactionAnalysisSchema)
async def get_wash_sale_status(
    transaction_id: str,
    as_of: date | None = Query(default=None, description="Only trades on or before this date count as known"),
    engine: AccountingEngine = Depends(get_engine),
) -> TransactionAnalysisSchema:
    try:
        analysis = engine.transaction_wash_sale_status(transaction_id, as_of=as_of)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown transaction {transaction_id}") from exc
    return TransactionAnalysisSchema.from_domain(analysis)


@router.post("/import", response_model=ImportReportSchema)
async def import_transactions(
    payload: ImportRequest,
    engine: AccountingEngine = Depends(get_engine),
) -> ImportReportSchema:
    report = engine.import_transactions(payload.records, force=payload.force)
    return ImportReportSchema.from_domain(report)


__all__ = ["router"]
