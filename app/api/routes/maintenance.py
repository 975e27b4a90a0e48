"""Lot rebuild and data reset endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_engine
from app.schemas import RebuildReportSchema
from washsafe import AccountingEngine

router = APIRouter()


@router.post("/rebuild", response_model=RebuildReportSchema)
async def post_rebuild(engine: AccountingEngine = Depends(get_engine)) -> RebuildReportSchema:
    report = engine.rebuild()
    engine.save()
    return RebuildReportSchema.from_domain(report)


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
async def delete_all_data(engine: AccountingEngine = Depends(get_engine)) -> Response:
    engine.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
