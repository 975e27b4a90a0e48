"""Translate engine result errors into HTTP responses."""

from __future__ import annotations

from decimal import Decimal

from fastapi import HTTPException, status

from washsafe.errors import EngineError, ErrorCode

_STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SPLIT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_SHARES: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_SPLIT: status.HTTP_409_CONFLICT,
    ErrorCode.UNKNOWN_SPLIT: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNKNOWN_TRANSACTION: status.HTTP_404_NOT_FOUND,
}


def http_error(error: EngineError, *, shortfall: Decimal | None = None) -> HTTPException:
    detail: dict[str, str] = error.to_dict()
    if shortfall:
        detail["shortfall"] = str(shortfall)
    return HTTPException(status_code=_STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST), detail=detail)


__all__ = ["http_error"]
