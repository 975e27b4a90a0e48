"""End-to-end accounting engine behaviour."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from factories import TODAY, buy, sell
from washsafe import AccountingEngine, EngineConfig, InMemoryStateStore
from washsafe.errors import ErrorCode
from washsafe.models import OutcomeType


def test_scenario_a_replacement_after_sale_is_wash_sale(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    recorded = engine.record_transaction(sell(100, 150, "2024-01-15"))
    engine.record_transaction(buy(100, 160, "2024-01-20"))

    assert recorded.wash_sale.type is OutcomeType.WARNING
    analysis = engine.transaction_wash_sale_status(recorded.transaction.id)
    assert analysis.is_wash_sale
    assert analysis.pnl == Decimal("-5000")
    assert analysis.disallowed_loss == Decimal("5000")
    assert [tx.date for tx in analysis.outcome.conflicting_purchases] == [date(2024, 1, 20)]


def test_scenario_a_is_clean_when_viewed_as_of_the_sale(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    recorded = engine.record_transaction(sell(100, 150, "2024-01-15"))
    engine.record_transaction(buy(100, 160, "2024-01-20"))

    analysis = engine.transaction_wash_sale_status(recorded.transaction, as_of=date(2024, 1, 15))

    assert not analysis.is_wash_sale
    assert analysis.disallowed_loss == Decimal("0")
    assert analysis.pnl == Decimal("-5000")


def test_scenario_b_loss_without_nearby_purchase_is_deductible(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    recorded = engine.record_transaction(sell(100, 150, "2024-03-01"))

    analysis = engine.transaction_wash_sale_status(recorded.transaction.id)
    stats = engine.year_stats(2024)

    assert recorded.wash_sale is None
    assert not analysis.is_wash_sale
    assert stats.total_losses == Decimal("5000")
    assert stats.wash_sale_count == 0
    assert stats.net_pnl == Decimal("-5000")


def test_scenario_c_split_then_sell(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    assert engine.add_split("AAPL", "2024-02-01", 2)

    [lot] = engine.lots.open_lots("AAPL")
    assert (lot.remaining_quantity, lot.cost_per_share) == (Decimal("200"), Decimal("100"))

    result = engine.record_transaction(sell(200, 60, "2024-03-01"))

    assert result.success
    assert result.allocation.proceeds == Decimal("12000")
    assert result.allocation.cost_basis == Decimal("20000")
    assert result.allocation.pnl == Decimal("-8000")
    assert not result.allocation.is_wash_sale
    assert engine.current_positions() == {}


def test_scenario_d_mixed_lot_outcomes(engine):
    engine.record_transaction(buy(50, 10, "2024-01-01"))
    engine.record_transaction(buy(50, 20, "2024-02-01"))

    result = engine.record_transaction(sell(60, 15, "2024-03-01"))

    pnls = [sale.pnl for sale in result.allocation.lot_sales]
    assert pnls == [Decimal("250"), Decimal("-50")]
    assert not result.allocation.is_wash_sale
    assert result.allocation.pnl == Decimal("200")


def test_scenario_d_only_losing_portion_is_disallowed(engine):
    engine.record_transaction(buy(50, 10, "2024-01-01"))
    engine.record_transaction(buy(50, 20, "2024-02-01"))
    sale = engine.record_transaction(sell(60, 15, "2024-03-01"))
    engine.record_transaction(buy(5, 16, "2024-03-10"))

    analysis = engine.transaction_wash_sale_status(sale.transaction.id)

    assert analysis.is_wash_sale
    assert analysis.disallowed_loss == Decimal("50")
    assert [s.is_wash_sale for s in analysis.allocation.lot_sales] == [False, True]
    assert analysis.allocation.recognized_pnl == Decimal("250")



def test_scenario_d_violation_reports_gross_loss(engine):
    engine.record_transaction(buy(50, 10, "2024-01-01"))
    engine.record_transaction(buy(50, 20, "2024-02-01"))
    engine.record_transaction(buy(5, 18, "2024-02-20"))

    result = engine.record_transaction(sell(60, 15, "2024-03-01"))

    outcome = result.wash_sale
    assert outcome.type is OutcomeType.VIOLATION
    assert result.allocation.pnl == Decimal("200")
    assert outcome.loss == Decimal("50")
    assert outcome.disallowed_loss == Decimal("50")
    assert [tx.date for tx in outcome.conflicting_purchases] == [date(2024, 2, 20)]

def test_lots_as_of_ignores_later_trades_and_splits(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.record_transaction(sell(30, 210, "2024-01-10"))
    engine.add_split("AAPL", "2024-02-01", 2)
    engine.record_transaction(buy(10, 95, "2024-03-01"))

    january = engine.lots_as_of("AAPL", "2024-01-10")
    split_day = engine.lots_as_of("AAPL", date(2024, 2, 1))
    later = engine.lots_as_of("AAPL", "2024-04-01")

    assert [(lot.remaining_quantity, lot.cost_per_share) for lot in january] == [(Decimal("100"), Decimal("200"))]
    assert [(lot.remaining_quantity, lot.cost_per_share) for lot in split_day] == [(Decimal("140"), Decimal("100"))]
    assert [lot.remaining_quantity for lot in later] == [Decimal("140"), Decimal("10")]


def test_historical_analysis_matches_record_time_for_backdated_buy(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    sale = engine.record_transaction(sell(50, 150, "2024-03-01"))
    engine.record_transaction(buy(100, 100, "2024-02-15"))

    analysis = engine.transaction_wash_sale_status(sale.transaction.id)

    assert analysis.allocation.lot_sales[0].purchase_date == date(2024, 1, 1)
    assert analysis.is_wash_sale
    assert engine.lots.total_shares("AAPL") == Decimal("150")


def test_oversell_is_rejected_and_nothing_recorded(engine, store):
    engine.record_transaction(buy(10, 10, "2024-01-01"))
    saves = store.save_count

    result = engine.record_transaction(sell(11, 10, "2024-02-01"))

    assert not result.success
    assert result.error.code is ErrorCode.INSUFFICIENT_SHARES
    assert result.shortfall == Decimal("1")
    assert len(engine.transactions()) == 1
    assert store.save_count == saves


def test_force_import_records_shortfall_and_skips_wash_sale(engine):
    engine.record_transaction(buy(10, 10, "2024-01-01"))
    engine.record_transaction(buy(10, 10, "2024-02-05"))

    result = engine.record_transaction(sell(25, 5, "2024-02-10"), force_import=True)

    assert result.success
    assert result.shortfall == Decimal("5")
    assert result.wash_sale is None
    assert engine.lots.total_shares("AAPL") == Decimal("0")


def test_backdated_sell_that_starves_later_sells_is_rejected(engine):
    engine.record_transaction(buy(100, 10, "2024-01-01"))
    engine.record_transaction(sell(100, 12, "2024-02-01"))

    result = engine.record_transaction(sell(50, 11, "2024-01-15"))

    assert not result.success
    assert result.error.code is ErrorCode.INSUFFICIENT_SHARES
    assert len(engine.transactions()) == 2



def test_backdated_sell_that_deepens_existing_shortfall_is_rejected(engine):
    engine.record_transaction(buy(10, 10, "2024-01-01"))
    forced = engine.record_transaction(sell(15, 12, "2024-03-01"), force_import=True)
    assert forced.shortfall == Decimal("5")

    result = engine.record_transaction(sell(5, 11, "2024-02-01"))

    assert not result.success
    assert result.error.code is ErrorCode.INSUFFICIENT_SHARES
    assert len(engine.transactions()) == 2
    assert [issue.shortfall for issue in engine.rebuild().issues] == [Decimal("5")]

def test_backdated_buy_reorders_lots(engine):
    engine.record_transaction(buy(10, 20, "2024-02-01", id="late"))
    engine.record_transaction(buy(10, 10, "2024-01-01", id="early"))

    result = engine.record_transaction(sell(10, 15, "2024-03-01"))

    assert result.allocation.lot_sales[0].purchase_transaction_id == "early"
    assert result.allocation.pnl == Decimal("50")


def test_invalid_input_returns_validation_error(engine):
    result = engine.record_transaction({"symbol": "AAPL", "type": "buy", "quantity": -1, "price": 1, "date": "2024-01-01"})

    assert not result.success
    assert result.error.code is ErrorCode.VALIDATION_ERROR
    assert len(engine.transactions()) == 0


def test_check_transaction_previews_without_recording(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.record_transaction(buy(10, 190, "2024-02-20"))

    preview = engine.check_transaction(sell(100, 150, "2024-03-01"))
    oversell = engine.check_transaction(sell(500, 150, "2024-03-01"))

    assert preview.success
    assert preview.wash_sale_violation is not None
    assert preview.wash_sale_violation.disallowed_loss == Decimal("5000")
    assert not oversell.success
    assert len(engine.transactions()) == 2
    assert engine.lots.total_shares("AAPL") == Decimal("110")


def test_safe_to_sell_date_is_last_buy_plus_31_days(engine):
    assert engine.safe_to_sell_date("AAPL") is None
    engine.record_transaction(buy(1, 1, "2024-01-01"))
    engine.record_transaction(buy(1, 1, "2024-05-20"))
    engine.record_transaction(sell(1, 1, "2024-06-01"))

    assert engine.safe_to_sell_date("aapl") == date(2024, 6, 20)


def test_year_to_date_stats_count_gains_losses_and_wash_sales(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.record_transaction(sell(100, 150, "2024-01-15"))
    engine.record_transaction(buy(100, 160, "2024-01-20"))
    engine.record_transaction(buy(10, 10, "2024-02-01", symbol="MSFT"))
    engine.record_transaction(sell(10, 30, "2024-05-01", symbol="MSFT"))
    engine.record_transaction(buy(5, 5, "2023-03-01", symbol="IBM"))
    engine.record_transaction(sell(5, 1, "2023-06-01", symbol="IBM"))

    stats = engine.year_to_date_stats()

    assert stats.year == TODAY.year
    assert stats.transaction_count == 5
    assert stats.sell_count == 2
    assert stats.total_gains == Decimal("200")
    assert stats.total_losses == Decimal("0")
    assert stats.wash_sale_count == 1
    assert stats.disallowed_losses == Decimal("5000")
    assert stats.net_pnl == Decimal("200")
    assert engine.years() == [2024, 2023]
    assert engine.year_stats(2023).total_losses == Decimal("20")


def test_delete_transaction_rebuilds_lots(engine):
    first = engine.record_transaction(buy(10, 10, "2024-01-01"))
    engine.record_transaction(buy(10, 20, "2024-01-05"))
    engine.record_transaction(sell(5, 30, "2024-02-01"))

    assert engine.delete_transaction(first.transaction.id)
    assert not engine.delete_transaction("missing")

    [lot] = engine.lots.open_lots("AAPL")
    assert lot.remaining_quantity == Decimal("5")
    assert lot.cost_per_share == Decimal("20")


def test_rebuild_reports_inconsistencies(engine):
    engine.record_transaction(buy(10, 10, "2024-01-01"))
    sale = engine.record_transaction(sell(10, 10, "2024-02-01"))
    engine.ledger.append(engine.ledger.normalize(sell(3, 10, "2024-03-01", id="orphan")))

    report = engine.rebuild()

    assert not report.consistent
    assert [issue.transaction_id for issue in report.issues] == ["orphan"]
    assert report.issues[0].shortfall == Decimal("3")
    assert sale.success


def test_rebuild_is_deterministic(engine):
    engine.record_transaction(buy(10, 10, "2024-01-01"))
    engine.record_transaction(buy(15, 12, "2024-01-01"))
    engine.record_transaction(sell(12, 11, "2024-01-20"))
    before = [lot.to_dict() for lot in engine.lots]

    engine.rebuild()

    assert [lot.to_dict() for lot in engine.lots] == before


def test_import_sorts_skips_duplicates_and_counts_invalid(engine):
    records = [
        sell(10, 15, "2024-02-01"),
        buy(10, 10, "2024-01-01"),
        buy(10, 10.004, "2024-01-01"),
        {"symbol": "", "type": "buy", "quantity": 1, "price": 1, "date": "2024-01-01"},
        sell(20, 15, "2024-03-01"),
    ]

    report = engine.import_transactions(records)

    assert report.received == 5
    assert report.invalid == 1
    assert report.duplicates == 1
    assert report.imported == 3
    assert report.shortfalls == 1
    assert report.skipped == 2
    again = engine.import_transactions(records)
    assert again.imported == 0
    assert again.duplicates == 4



def test_import_counts_bad_created_at_as_invalid(engine):
    report = engine.import_transactions(
        [
            buy(10, 10, "2024-01-01", created_at="not-a-timestamp"),
            buy(5, 10, "2024-01-02"),
        ]
    )

    assert report.invalid == 1
    assert report.imported == 1
    assert report.errors[0].code is ErrorCode.VALIDATION_ERROR

def test_import_batches_saves(engine, store):
    saves = store.save_count

    engine.import_transactions([buy(1, 1, f"2024-01-{day:02d}") for day in range(1, 11)])

    assert store.save_count == saves + 1


def test_state_survives_reload(store):
    first = AccountingEngine(store, clock=lambda: TODAY)
    first.record_transaction(buy(100, 200, "2024-01-01"))
    first.add_split("AAPL", "2024-02-01", 2)
    first.record_transaction(sell(50, 120, "2024-03-01"))

    second = AccountingEngine(store, clock=lambda: TODAY)

    assert [tx.id for tx in second.transactions()] == [tx.id for tx in first.transactions()]
    assert [lot.to_dict() for lot in second.lots] == [lot.to_dict() for lot in first.lots]
    assert second.list_splits() == first.list_splits()


def test_clear_empties_everything(engine, store):
    engine.record_transaction(buy(1, 1, "2024-01-01"))
    engine.add_split("AAPL", "2024-02-01", 2)

    engine.clear()

    assert engine.transactions() == []
    assert engine.list_splits() == []
    assert len(engine.lots) == 0
    assert store.load().transactions == []



def test_configured_default_account_applies_to_recorded_trades():
    engine = AccountingEngine(InMemoryStateStore(), config=EngineConfig(default_account="Taxable"), clock=lambda: TODAY)

    result = engine.record_transaction(buy(1, 1, "2024-01-01"))

    assert result.transaction.account == "Taxable"
    assert engine.lots.open_lots("AAPL")[0].account == "Taxable"

def test_config_window_changes_detection():
    engine = AccountingEngine(InMemoryStateStore(), config=EngineConfig(wash_sale_window_days=5, safe_to_sell_offset_days=6))
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    sale = engine.record_transaction(sell(100, 150, "2024-01-15"))
    engine.record_transaction(buy(100, 160, "2024-01-25"))

    assert not engine.transaction_wash_sale_status(sale.transaction.id).is_wash_sale
    assert engine.safe_to_sell_date("AAPL") == date(2024, 1, 31)
