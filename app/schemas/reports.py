"""Schemas for tax-year reporting and maintenance endpoints."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel

from washsafe.models import RebuildReport, YearStats


class YearStatsSchema(BaseModel):
    year: int
    transaction_count: int
    sell_count: int
    total_gains: Decimal
    total_losses: Decimal
    wash_sale_count: int
    disallowed_losses: Decimal
    net_pnl: Decimal

    @classmethod
    def from_domain(cls, stats: YearStats) -> "YearStatsSchema":
        return cls(
            year=stats.year,
            transaction_count=stats.transaction_count,
            sell_count=stats.sell_count,
            total_gains=stats.total_gains,
            total_losses=stats.total_losses,
            wash_sale_count=stats.wash_sale_count,
            disallowed_losses=stats.disallowed_losses,
            net_pnl=stats.net_pnl,
        )


class RebuildIssueSchema(BaseModel):
    transaction_id: str
    symbol: str
    date: dt.date
    shortfall: Decimal
    message: str


class RebuildReportSchema(BaseModel):
    lots_created: int
    sells_replayed: int
    open_lots: int
    consistent: bool
    issues: list[RebuildIssueSchema]

    @classmethod
    def from_domain(cls, report: RebuildReport) -> "RebuildReportSchema":
        return cls(
            lots_created=report.lots_created,
            sells_replayed=report.sells_replayed,
            open_lots=report.open_lots,
            consistent=report.consistent,
            issues=[
                RebuildIssueSchema(
                    transaction_id=issue.transaction_id,
                    symbol=issue.symbol,
                    date=issue.date,
                    shortfall=issue.shortfall,
                    message=issue.message,
                )
                for issue in report.issues
            ],
        )


class RestoreResponse(BaseModel):
    restored_transactions: int
    restored_splits: int
    rebuild: RebuildReportSchema


__all__ = [
    "RebuildIssueSchema",
    "RebuildReportSchema",
    "RestoreResponse",
    "YearStatsSchema",
]
