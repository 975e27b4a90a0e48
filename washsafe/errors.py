"""Error taxonomy shared by the accounting core."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_SHARES = "insufficient_shares"
    DUPLICATE_SPLIT = "duplicate_split"
    INVALID_SPLIT = "invalid_split"
    UNKNOWN_SPLIT = "unknown_split"
    UNKNOWN_TRANSACTION = "unknown_transaction"


@dataclass(frozen=True)
class EngineError:
    """Machine-usable failure attached to a result value."""

    code: ErrorCode
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}


class WashSafeError(Exception):
    """Base class for exceptions raised by the accounting core."""


class TransactionValidationError(WashSafeError, ValueError):
    """Raised at the ledger boundary when a raw transaction is malformed."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def as_error(self) -> EngineError:
        return EngineError(ErrorCode.VALIDATION_ERROR, str(self))


__all__ = [
    "ErrorCode",
    "EngineError",
    "WashSafeError",
    "TransactionValidationError",
]
