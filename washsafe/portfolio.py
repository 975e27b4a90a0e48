"""Per-symbol position projection over open lots."""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable

from .models import ZERO, Position, ShareLot


def _group_by_symbol(lots: Iterable[ShareLot]) -> Dict[str, list[ShareLot]]:
    grouped: Dict[str, list[ShareLot]] = {}
    for lot in lots:
        if lot.is_open:
            grouped.setdefault(lot.symbol, []).append(lot)
    return grouped


def project_positions(lots: Iterable[ShareLot]) -> Dict[str, Position]:
    """Aggregate open lots into positions with weighted-average cost."""

    positions: Dict[str, Position] = {}
    for symbol, symbol_lots in sorted(_group_by_symbol(lots).items()):
        shares = sum((lot.remaining_quantity for lot in symbol_lots), ZERO)
        cost_basis = sum((lot.remaining_cost for lot in symbol_lots), ZERO)
        average_cost = cost_basis / shares if shares else Decimal("0")
        positions[symbol] = Position(
            symbol=symbol,
            shares=shares,
            cost_basis=cost_basis,
            average_cost=average_cost,
            lots=[lot.copy() for lot in sorted(symbol_lots, key=lambda lot: lot.purchase_date)],
        )
    return positions


__all__ = ["project_positions"]
