"""Stock split registry and the cumulative split-adjustment calculator."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from .models import StockSplit

logger = logging.getLogger(__name__)

ONE = Decimal("1")


@dataclass(frozen=True)
class SplitAdjustment:
    """Cumulative effect of the splits that follow a reference date."""

    total_ratio: Decimal = ONE
    applied_splits: tuple[StockSplit, ...] = ()

    @property
    def split_ids(self) -> tuple[str, ...]:
        return tuple(split.id for split in self.applied_splits)

    def quantity(self, quantity: Decimal) -> Decimal:
        return quantity * self.total_ratio

    def price(self, price: Decimal) -> Decimal:
        return price / self.total_ratio


class SplitRegistry:
    """Splits per symbol, kept in split-date order."""

    def __init__(
        self,
        splits: Iterable[StockSplit] = (),
        *,
        duplicate_window: timedelta = timedelta(hours=24),
    ) -> None:
        self._splits: dict[str, StockSplit] = {}
        self.duplicate_window = duplicate_window
        for split in splits:
            self.put(split)

    def put(self, split: StockSplit) -> None:
        """Insert an already-registered split (e.g. from storage) without the duplicate guard."""

        self._splits[split.id] = split

    def __len__(self) -> int:
        return len(self._splits)

    def __contains__(self, split_id: object) -> bool:
        return split_id in self._splits

    def get(self, split_id: str) -> Optional[StockSplit]:
        return self._splits.get(split_id)

    def find_conflict(self, symbol: str, split_date: date) -> Optional[StockSplit]:
        """Return an existing split of ``symbol`` inside the duplicate window."""

        symbol = symbol.upper()
        for split in self._splits.values():
            if split.symbol != symbol:
                continue
            if abs(split.split_date - split_date) < self.duplicate_window:
                return split
        return None

    def add(
        self,
        symbol: str,
        split_date: date,
        ratio: Decimal,
        *,
        split_id: str | None = None,
        applied_at: datetime | None = None,
    ) -> Optional[StockSplit]:
        """Register a split, or return ``None`` when it duplicates an existing one."""

        if ratio <= 0:
            raise ValueError(f"Split ratio must be positive, got {ratio}")
        conflict = self.find_conflict(symbol, split_date)
        if conflict is not None:
            logger.warning(
                "Rejected split for %s on %s: %s already has a split on %s",
                symbol.upper(),
                split_date,
                conflict.symbol,
                conflict.split_date,
            )
            return None
        split = StockSplit(
            id=split_id or f"split-{uuid.uuid4().hex[:12]}",
            symbol=symbol.upper(),
            split_date=split_date,
            ratio=ratio,
            applied_at=applied_at or datetime.now(timezone.utc),
        )
        self._splits[split.id] = split
        return split

    def remove(self, split_id: str) -> Optional[StockSplit]:
        return self._splits.pop(split_id, None)

    def clear(self) -> None:
        self._splits.clear()

    def all(self) -> list[StockSplit]:
        return sorted(self._splits.values(), key=lambda s: (s.symbol, s.split_date, s.id))

    def for_symbol(self, symbol: str) -> list[StockSplit]:
        symbol = symbol.upper()
        return sorted(
            (split for split in self._splits.values() if split.symbol == symbol),
            key=lambda s: (s.split_date, s.id),
        )

    def adjustment_for(self, symbol: str, as_of: date, through: date | None = None) -> SplitAdjustment:
        """Multiply together every split dated strictly after ``as_of``.

        ``through`` caps the horizon: splits dated after it are ignored, which is
        how historical snapshots avoid seeing later splits.
        """

        ratio = ONE
        applied: list[StockSplit] = []
        for split in self.for_symbol(symbol):
            if split.split_date <= as_of:
                continue
            if through is not None and split.split_date > through:
                continue
            ratio *= split.ratio
            applied.append(split)
        return SplitAdjustment(total_ratio=ratio, applied_splits=tuple(applied))


__all__ = ["SplitAdjustment", "SplitRegistry"]
