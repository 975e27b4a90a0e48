"""Tax-year reports, accountant export and backup/restore."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from app.api.dependencies import get_engine
from app.schemas import RebuildReportSchema, RestoreResponse, YearStatsSchema
from washsafe import AccountingEngine, reporting

router = APIRouter()


@router.get("/ytd", response_model=YearStatsSchema)
async def get_year_to_date(engine: AccountingEngine = Depends(get_engine)) -> YearStatsSchema:
    return YearStatsSchema.from_domain(engine.year_to_date_stats())


@router.get("/yearly", response_model=list[YearStatsSchema])
async def get_yearly(engine: AccountingEngine = Depends(get_engine)) -> list[YearStatsSchema]:
    return [YearStatsSchema.from_domain(stats) for stats in reporting.yearly_summaries(engine)]


@router.get("/tax-summary/{year}")
async def get_tax_summary(year: int, engine: AccountingEngine = Depends(get_engine)) -> dict[str, Any]:
    return reporting.tax_summary(engine, year)


@router.get("/accountant/{year}")
async def get_accountant_csv(year: int, engine: AccountingEngine = Depends(get_engine)) -> Response:
    return Response(
        content=reporting.accountant_csv(engine, year),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="washsafe-accountant-{year}.csv"'},
    )


@router.get("/realized/{year}")
async def get_realized_lots_csv(year: int, engine: AccountingEngine = Depends(get_engine)) -> Response:
    frame = reporting.realized_lots_frame(engine, year)
    return Response(
        content=frame.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="washsafe-realized-{year}.csv"'},
    )


@router.get("/export")
async def get_export(engine: AccountingEngine = Depends(get_engine)) -> dict[str, Any]:
    return reporting.export_snapshot(engine)


@router.post("/restore", response_model=RestoreResponse)
async def post_restore(
    payload: dict[str, Any] = Body(...),
    engine: AccountingEngine = Depends(get_engine),
) -> RestoreResponse:
    if not isinstance(payload.get("transactions"), list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Backup has no transactions list")
    try:
        restored = reporting.restore_snapshot(engine, payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid backup: {exc}") from exc
    return RestoreResponse(
        restored_transactions=restored,
        restored_splits=len(engine.list_splits()),
        rebuild=RebuildReportSchema.from_domain(engine.last_rebuild),
    )


__all__ = ["router"]
