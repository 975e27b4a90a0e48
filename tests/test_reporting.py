"""Tax-year reports and backup round trips."""

from __future__ import annotations

import io
import json
from decimal import Decimal

import pandas as pd

from factories import TODAY, buy, sell
from washsafe import AccountingEngine, InMemoryStateStore
from washsafe import reporting


def _wash_sale_year(engine: AccountingEngine) -> None:
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.record_transaction(sell(100, 150, "2024-01-15"))
    engine.record_transaction(buy(100, 160, "2024-01-20"))
    engine.record_transaction(sell(50, 170, "2024-04-01"))
    engine.record_transaction(buy(5, 5, "2023-03-01", symbol="IBM"))


def test_yearly_summaries_most_recent_first(engine):
    _wash_sale_year(engine)

    summaries = reporting.yearly_summaries(engine)

    assert [stats.year for stats in summaries] == [2024, 2023]
    assert summaries[0].wash_sale_count == 1
    assert summaries[0].total_gains == Decimal("500")
    assert summaries[1].sell_count == 0
    assert reporting.stats_to_dict(summaries[0])["net_pnl"] == "500"


def test_tax_summary_lists_violations(engine):
    _wash_sale_year(engine)

    summary = reporting.tax_summary(engine, 2024)

    assert summary["year"] == 2024
    assert len(summary["transactions"]) == 4
    assert [item["date"] for item in summary["wash_sale_violations"]] == ["2024-01-15"]
    assert Decimal(summary["summary"]["total_disallowed_losses"]) == Decimal("5000")
    json.dumps(summary)


def test_accountant_csv_columns_and_flags(engine):
    _wash_sale_year(engine)

    frame = pd.read_csv(io.StringIO(reporting.accountant_csv(engine, 2024)), dtype=str, keep_default_na=False)

    assert list(frame.columns) == reporting.ACCOUNTANT_COLUMNS
    assert list(frame["Type"]) == ["BUY", "SELL", "BUY", "SELL"]
    flagged = frame[frame["Wash Sale"] == "Yes"]
    assert list(flagged["Date"]) == ["2024-01-15"]
    assert list(flagged["Realized P&L"]) == ["-5000.00"]
    assert list(flagged["Disallowed Loss"]) == ["5000.00"]
    assert frame.loc[0, "Realized P&L"] == ""


def test_realized_lots_frame_has_one_row_per_lot_sale(engine):
    engine.record_transaction(buy(50, 10, "2024-01-01"))
    engine.record_transaction(buy(50, 20, "2024-02-01"))
    engine.record_transaction(sell(60, 15, "2024-03-01"))

    frame = reporting.realized_lots_frame(engine, 2024)

    assert len(frame) == 2
    assert frame["pnl"].tolist() == [250.0, -50.0]
    assert reporting.realized_lots_frame(engine, 2020).empty


def test_export_restore_round_trip(engine):
    _wash_sale_year(engine)
    engine.add_split("AAPL", "2024-05-01", 2)

    payload = json.loads(json.dumps(reporting.export_snapshot(engine)))
    assert payload["version"] == reporting.EXPORT_VERSION
    assert payload["portfolio"]["AAPL"]["shares"] == "100"
    assert payload["ytd_stats"]["year"] == TODAY.year

    restored = AccountingEngine(InMemoryStateStore(), clock=lambda: TODAY)
    count = reporting.restore_snapshot(restored, payload)

    assert count == len(engine.transactions())
    assert [tx.to_dict() for tx in restored.transactions()] == [tx.to_dict() for tx in engine.transactions()]
    assert [lot.to_dict() for lot in restored.lots] == [lot.to_dict() for lot in engine.lots]
    assert restored.year_stats(2024) == engine.year_stats(2024)
