"""Stock split registry endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.dependencies import get_engine
from app.api.errors import http_error
from app.schemas import SplitApplicationSchema, SplitCreateRequest, StockSplitSchema
from washsafe import AccountingEngine

router = APIRouter()


@router.get("", response_model=list[StockSplitSchema])
async def get_splits(
    symbol: str | None = Query(default=None),
    engine: AccountingEngine = Depends(get_engine),
) -> list[StockSplitSchema]:
    selected = symbol.strip().upper() if symbol else None
    return [StockSplitSchema.from_domain(split) for split in engine.list_splits(selected)]


@router.post("", response_model=SplitApplicationSchema, status_code=status.HTTP_201_CREATED)
async def post_split(
    payload: SplitCreateRequest,
    engine: AccountingEngine = Depends(get_engine),
) -> SplitApplicationSchema:
    result = engine.apply_split(payload.symbol, payload.split_date, payload.ratio, split_id=payload.id)
    if not result.success:
        raise http_error(result.error)
    return SplitApplicationSchema.from_domain(result)


@router.delete("/{split_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_split(split_id: str, engine: AccountingEngine = Depends(get_engine)) -> Response:
    result = engine.undo_split(split_id)
    if not result.success:
        raise http_error(result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
