"""Tax-year reporting built on point-in-time transaction analysis."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

import pandas as pd

from .engine import AccountingEngine
from .models import YearStats
from .persistence import EngineState

EXPORT_VERSION = "1.0"

ACCOUNTANT_COLUMNS = [
    "Date",
    "Type",
    "Symbol",
    "Shares",
    "Price",
    "Total",
    "Realized P&L",
    "Wash Sale",
    "Disallowed Loss",
    "Notes",
]


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def yearly_summaries(engine: AccountingEngine) -> list[YearStats]:
    """Statistics for every year with activity, most recent first."""

    return [engine.year_stats(year) for year in engine.years()]


def stats_to_dict(stats: YearStats) -> dict[str, Any]:
    return {
        "year": stats.year,
        "transaction_count": stats.transaction_count,
        "sell_count": stats.sell_count,
        "total_gains": str(stats.total_gains),
        "total_losses": str(stats.total_losses),
        "wash_sale_count": stats.wash_sale_count,
        "disallowed_losses": str(stats.disallowed_losses),
        "net_pnl": str(stats.net_pnl),
    }


def realized_lots_frame(engine: AccountingEngine, year: int) -> pd.DataFrame:
    """One row per lot-sale realized in ``year``."""

    rows: list[dict[str, Any]] = []
    for tx in engine.transactions():
        if tx.date.year != year or not tx.is_sell:
            continue
        analysis = engine.transaction_wash_sale_status(tx)
        if analysis.allocation is None:
            continue
        for sale in analysis.allocation.lot_sales:
            rows.append(
                {
                    "transaction_id": tx.id,
                    "symbol": tx.symbol,
                    "sell_date": tx.date,
                    "lot_id": sale.lot_id,
                    "purchase_date": sale.purchase_date,
                    "shares": float(sale.shares_from_lot),
                    "cost_basis": float(sale.cost_basis),
                    "proceeds": float(sale.sale_proceeds),
                    "pnl": float(sale.pnl),
                    "wash_sale": sale.is_wash_sale,
                    "disallowed_loss": float(sale.disallowed_loss),
                }
            )
    columns = [
        "transaction_id",
        "symbol",
        "sell_date",
        "lot_id",
        "purchase_date",
        "shares",
        "cost_basis",
        "proceeds",
        "pnl",
        "wash_sale",
        "disallowed_loss",
    ]
    return pd.DataFrame(rows, columns=columns)


def tax_summary(engine: AccountingEngine, year: int) -> dict[str, Any]:
    stats = engine.year_stats(year)
    year_transactions = [tx for tx in engine.transactions() if tx.date.year == year]
    violations = []
    for tx in year_transactions:
        if not tx.is_sell:
            continue
        analysis = engine.transaction_wash_sale_status(tx)
        if analysis.is_wash_sale:
            record = tx.to_dict()
            record["disallowed_loss"] = str(analysis.disallowed_loss)
            violations.append(record)
    return {
        "year": year,
        "export_date": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "total_realized_gains": str(stats.total_gains),
            "total_realized_losses": str(stats.total_losses),
            "total_disallowed_losses": str(stats.disallowed_losses),
            "net_tax_impact": str(stats.net_pnl),
        },
        "transactions": [tx.to_dict() for tx in year_transactions],
        "wash_sale_violations": violations,
    }


def accountant_frame(engine: AccountingEngine, year: int) -> pd.DataFrame:
    rows: list[list[str]] = []
    for tx in engine.transactions():
        if tx.date.year != year:
            continue
        realized = ""
        wash_sale = "No"
        disallowed = ""
        notes = ""
        if tx.is_sell:
            analysis = engine.transaction_wash_sale_status(tx)
            realized = _money(analysis.pnl)
            if analysis.is_wash_sale:
                wash_sale = "Yes"
                disallowed = _money(analysis.disallowed_loss)
                notes = "Loss disallowed due to wash sale rule"
        rows.append(
            [
                tx.date.isoformat(),
                tx.type.value.upper(),
                tx.symbol,
                str(tx.quantity),
                _money(tx.price),
                _money(tx.total),
                realized,
                wash_sale,
                disallowed,
                notes,
            ]
        )
    return pd.DataFrame(rows, columns=ACCOUNTANT_COLUMNS)


def accountant_csv(engine: AccountingEngine, year: int) -> str:
    return accountant_frame(engine, year).to_csv(index=False)


def export_snapshot(engine: AccountingEngine) -> dict[str, Any]:
    """Full JSON-able backup plus derived positions and year-to-date stats."""

    state = engine.state()
    payload = state.to_dict()
    payload["portfolio"] = {
        symbol: {
            "shares": str(position.shares),
            "average_cost": str(position.average_cost),
            "cost_basis": str(position.cost_basis),
            "lots": [lot.to_dict() for lot in position.lots],
        }
        for symbol, position in engine.current_positions().items()
    }
    payload["ytd_stats"] = stats_to_dict(engine.year_to_date_stats())
    payload["export_date"] = datetime.now(timezone.utc).isoformat()
    payload["version"] = EXPORT_VERSION
    return payload


def restore_snapshot(engine: AccountingEngine, payload: Mapping[str, Any]) -> int:
    """Replace the engine's ledger and splits with an exported snapshot.

    Returns the number of transactions restored. Every transaction passes
    through the ledger's validation first, so a bad backup is refused whole.
    """

    state = EngineState.from_dict(payload)
    state.transactions = [engine.ledger.normalize(tx) for tx in state.transactions]
    engine.replace_state(state)
    return len(state.transactions)


__all__ = [
    "ACCOUNTANT_COLUMNS",
    "EXPORT_VERSION",
    "yearly_summaries",
    "stats_to_dict",
    "realized_lots_frame",
    "tax_summary",
    "accountant_frame",
    "accountant_csv",
    "export_snapshot",
    "restore_snapshot",
]
