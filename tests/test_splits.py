"""Split registry, adjustment views and split application through the engine."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from factories import buy, sell
from washsafe.errors import ErrorCode
from washsafe.splits import SplitRegistry


def test_adjustment_multiplies_later_splits_only():
    registry = SplitRegistry()
    registry.add("aapl", date(2024, 2, 1), Decimal("2"))
    registry.add("AAPL", date(2024, 5, 1), Decimal("3"))
    registry.add("MSFT", date(2024, 3, 1), Decimal("10"))

    assert registry.adjustment_for("AAPL", date(2024, 1, 1)).total_ratio == Decimal("6")
    assert registry.adjustment_for("AAPL", date(2024, 2, 1)).total_ratio == Decimal("3")
    assert registry.adjustment_for("AAPL", date(2024, 1, 1), through=date(2024, 4, 30)).total_ratio == Decimal("2")
    assert registry.adjustment_for("AAPL", date(2024, 6, 1)).total_ratio == Decimal("1")


def test_adjustment_applies_to_quantity_and_price():
    registry = SplitRegistry()
    split = registry.add("AAPL", date(2024, 2, 1), Decimal("0.5"))

    adjustment = registry.adjustment_for("AAPL", date(2024, 1, 1))

    assert adjustment.split_ids == (split.id,)
    assert adjustment.quantity(Decimal("100")) == Decimal("50")
    assert adjustment.price(Decimal("200")) == Decimal("400")


def test_duplicate_split_on_same_date_is_refused():
    registry = SplitRegistry()
    assert registry.add("AAPL", date(2024, 2, 1), Decimal("2")) is not None

    assert registry.add("aapl", date(2024, 2, 1), Decimal("4")) is None
    assert registry.add("AAPL", date(2024, 2, 2), Decimal("4")) is not None
    assert len(registry) == 2


def test_non_positive_ratio_raises():
    with pytest.raises(ValueError):
        SplitRegistry().add("AAPL", date(2024, 2, 1), Decimal("0"))


def test_forward_split_rescales_existing_lot(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))

    assert engine.add_split("AAPL", "2024-02-01", 2)

    [lot] = engine.lots.open_lots("AAPL")
    assert lot.remaining_quantity == Decimal("200")
    assert lot.cost_per_share == Decimal("100")
    assert lot.remaining_cost == Decimal("20000")
    [tx] = engine.transactions("AAPL")
    assert tx.quantity == Decimal("100")
    assert tx.price == Decimal("200")


def test_reverse_split_rescales_existing_lot(engine):
    engine.record_transaction(buy(100, 5, "2024-01-01"))

    engine.add_split("AAPL", "2024-02-01", "0.1")

    [lot] = engine.lots.open_lots("AAPL")
    assert lot.remaining_quantity == Decimal("10")
    assert lot.cost_per_share == Decimal("50")


def test_split_does_not_touch_later_purchases(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.add_split("AAPL", "2024-02-01", 2)
    engine.record_transaction(buy(10, 90, "2024-03-01"))

    lots = engine.lots.open_lots("AAPL")
    assert [lot.remaining_quantity for lot in lots] == [Decimal("200"), Decimal("10")]
    assert lots[1].applied_splits == ()


def test_apply_then_undo_restores_lots(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.record_transaction(buy(40, 150, "2024-01-20"))
    engine.record_transaction(sell(60, 170, "2024-03-05"))
    before = [lot.to_dict() for lot in engine.lots]

    applied = engine.apply_split("AAPL", date(2024, 2, 1), Decimal("3"))
    assert applied.success
    assert applied.lots_affected == 2
    assert applied.transactions_affected == 2

    undone = engine.undo_split(applied.split.id)
    assert undone.success
    assert [lot.to_dict() for lot in engine.lots] == before


def test_split_application_is_idempotent_by_id(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))

    first = engine.apply_split("AAPL", "2024-02-01", 2, split_id="split-1")
    second = engine.apply_split("AAPL", "2024-02-01", 2, split_id="split-1")

    assert first.success and not first.already_applied
    assert second.success and second.already_applied
    assert engine.lots.total_shares("AAPL") == Decimal("200")
    assert len(engine.list_splits("AAPL")) == 1


def test_duplicate_and_invalid_splits_report_errors(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.add_split("AAPL", "2024-02-01", 2)

    duplicate = engine.apply_split("AAPL", "2024-02-01", 4)
    invalid = engine.apply_split("AAPL", "2024-04-01", -2)
    too_precise = engine.apply_split("AAPL", "2024-05-01", "1.00000000001")
    missing = engine.undo_split("nope")

    assert duplicate.error.code is ErrorCode.DUPLICATE_SPLIT
    assert invalid.error.code is ErrorCode.INVALID_SPLIT
    assert too_precise.error.code is ErrorCode.INVALID_SPLIT
    assert missing.error.code is ErrorCode.UNKNOWN_SPLIT
    assert engine.add_split("AAPL", "2024-02-01", 4) is False
    assert engine.remove_split("nope") is False
    assert engine.lots.total_shares("AAPL") == Decimal("200")


def test_sell_after_split_is_matched_in_post_split_shares(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.add_split("AAPL", "2024-02-01", 2)

    result = engine.record_transaction(sell(150, 110, "2024-03-01"))

    assert result.success
    assert result.allocation.pnl == Decimal("1500")
    assert engine.lots.total_shares("AAPL") == Decimal("50")


def test_sell_before_split_is_restated_in_post_split_terms(engine):
    engine.record_transaction(buy(100, 200, "2024-01-01"))
    engine.record_transaction(sell(50, 220, "2024-01-15"))

    engine.add_split("AAPL", "2024-02-01", 2)

    [lot] = engine.lots.open_lots("AAPL")
    assert lot.remaining_quantity == Decimal("100")
    assert lot.cost_per_share == Decimal("100")
