"""Persistence boundary: the engine reads and writes its state through a store."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from .models import ShareLot, StockSplit, Transaction


@dataclass
class EngineState:
    transactions: list[Transaction] = field(default_factory=list)
    share_lots: list[ShareLot] = field(default_factory=list)
    stock_splits: list[StockSplit] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [tx.to_dict() for tx in self.transactions],
            "share_lots": [lot.to_dict() for lot in self.share_lots],
            "stock_splits": [split.to_dict() for split in self.stock_splits],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineState":
        return cls(
            transactions=[Transaction.from_dict(item) for item in data.get("transactions") or []],
            share_lots=[ShareLot.from_dict(item) for item in data.get("share_lots") or []],
            stock_splits=[StockSplit.from_dict(item) for item in data.get("stock_splits") or []],
        )


class StateStore(Protocol):
    """Pluggable storage for the engine's full state."""

    def load(self) -> EngineState:
        ...

    def save(self, state: EngineState) -> None:
        ...


class InMemoryStateStore:
    """Keeps the last saved state in memory; used for tests and throwaway sessions."""

    def __init__(self, state: EngineState | None = None) -> None:
        self._state = state or EngineState()
        self.save_count = 0

    def load(self) -> EngineState:
        return EngineState(
            transactions=list(self._state.transactions),
            share_lots=[lot.copy() for lot in self._state.share_lots],
            stock_splits=list(self._state.stock_splits),
        )

    def save(self, state: EngineState) -> None:
        self._state = EngineState(
            transactions=list(state.transactions),
            share_lots=[lot.copy() for lot in state.share_lots],
            stock_splits=list(state.stock_splits),
        )
        self.save_count += 1


__all__ = ["EngineState", "StateStore", "InMemoryStateStore"]
