"""Pydantic schema exports."""

from .portfolio import PositionSchema, SafeToSellSchema, ShareLotSchema
from .reports import RebuildIssueSchema, RebuildReportSchema, RestoreResponse, YearStatsSchema
from .splits import SplitApplicationSchema, SplitCreateRequest, StockSplitSchema
from .transactions import (
    AllocationSchema,
    ErrorSchema,
    ImportReportSchema,
    ImportRequest,
    LotSaleSchema,
    RecordResultSchema,
    TransactionAnalysisSchema,
    TransactionCreateRequest,
    TransactionSchema,
    WashSaleOutcomeSchema,
)

__all__ = [
    "AllocationSchema",
    "ErrorSchema",
    "ImportReportSchema",
    "ImportRequest",
    "LotSaleSchema",
    "PositionSchema",
    "RebuildIssueSchema",
    "RebuildReportSchema",
    "RecordResultSchema",
    "RestoreResponse",
    "SafeToSellSchema",
    "ShareLotSchema",
    "SplitApplicationSchema",
    "SplitCreateRequest",
    "StockSplitSchema",
    "TransactionAnalysisSchema",
    "TransactionCreateRequest",
    "TransactionSchema",
    "WashSaleOutcomeSchema",
    "YearStatsSchema",
]
