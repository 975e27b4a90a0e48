"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .maintenance import router as maintenance_router
from .portfolio import router as portfolio_router
from .reports import router as reports_router
from .splits import router as splits_router
from .transactions import router as transactions_router

api_router = APIRouter()
api_router.include_router(transactions_router, prefix="/transactions", tags=["transactions"])
api_router.include_router(portfolio_router, prefix="/portfolio", tags=["portfolio"])
api_router.include_router(splits_router, prefix="/splits", tags=["splits"])
api_router.include_router(reports_router, prefix="/reports", tags=["reports"])
api_router.include_router(maintenance_router, tags=["maintenance"])

__all__ = ["api_router"]
