"""Open positions, lot views and safe-to-sell lookups."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_engine
from app.schemas import PositionSchema, SafeToSellSchema, ShareLotSchema
from washsafe import AccountingEngine

router = APIRouter()


@router.get("/positions", response_model=list[PositionSchema])
async def get_positions(engine: AccountingEngine = Depends(get_engine)) -> list[PositionSchema]:
    positions = engine.current_positions()
    return [PositionSchema.from_domain(positions[symbol]) for symbol in sorted(positions)]


@router.get("/lots/{symbol}", response_model=list[ShareLotSchema])
async def get_lots(
    symbol: str,
    as_of: date | None = Query(default=None, description="Reconstruct lots held walking into this date"),
    engine: AccountingEngine = Depends(get_engine),
) -> list[ShareLotSchema]:
    ticker = symbol.strip().upper()
    if as_of is None:
        lots = engine.lots.open_lots(ticker)
    else:
        try:
            lots = engine.lots_as_of(ticker, as_of)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [ShareLotSchema.from_domain(lot) for lot in lots]


@router.get("/safe-to-sell/{symbol}", response_model=SafeToSellSchema)
async def get_safe_to_sell(symbol: str, engine: AccountingEngine = Depends(get_engine)) -> SafeToSellSchema:
    ticker = symbol.strip().upper()
    buys = [tx.date for tx in engine.transactions(ticker) if tx.is_buy]
    safe_date = engine.safe_to_sell_date(ticker)
    return SafeToSellSchema(
        symbol=ticker,
        last_purchase_date=max(buys) if buys else None,
        safe_to_sell_date=safe_date,
        safe_today=safe_date is None or engine.today() >= safe_date,
    )


__all__ = ["router"]
