"""SQLAlchemy state store against in-memory SQLite."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.init import init_database
from app.db.session import create_db_engine, create_session_factory
from app.models import ShareLotRecord, TransactionRecord
from app.services.storage import SqlAlchemyStateStore
from factories import TODAY, buy, sell
from washsafe import AccountingEngine


@pytest.fixture
def session_factory():
    db_engine = create_db_engine("sqlite:///:memory:")
    init_database(db_engine)
    yield create_session_factory(db_engine)
    db_engine.dispose()


def test_empty_database_loads_empty_state(session_factory):
    state = SqlAlchemyStateStore(session_factory).load()

    assert state.transactions == []
    assert state.share_lots == []
    assert state.stock_splits == []


def test_engine_state_round_trips_through_database(session_factory):
    store = SqlAlchemyStateStore(session_factory)
    engine = AccountingEngine(store, clock=lambda: TODAY)
    engine.record_transaction(buy(100, "200.25", "2024-01-01", account="Broker-1"))
    engine.record_transaction(buy(10, 190, "2024-01-10", symbol="MSFT"))
    engine.add_split("AAPL", "2024-02-01", 2)
    engine.record_transaction(sell(50, 120, "2024-03-01"))

    reloaded = AccountingEngine(SqlAlchemyStateStore(session_factory), clock=lambda: TODAY)

    assert [tx.id for tx in reloaded.transactions()] == [tx.id for tx in engine.transactions()]
    first = reloaded.transactions("AAPL")[0]
    assert first.price == Decimal("200.25")
    assert first.account == "Broker-1"
    assert first.date == date(2024, 1, 1)
    [split] = reloaded.list_splits("AAPL")
    assert split.ratio == Decimal("2")
    assert reloaded.lots.total_shares("AAPL") == Decimal("150")
    assert reloaded.lots.total_shares("MSFT") == Decimal("10")
    assert reloaded.lots.open_lots("AAPL")[0].applied_splits == (split.id,)


def test_save_replaces_previous_rows(session_factory):
    store = SqlAlchemyStateStore(session_factory)
    engine = AccountingEngine(store, clock=lambda: TODAY)
    created = engine.record_transaction(buy(1, 1, "2024-01-01"))
    engine.record_transaction(buy(1, 1, "2024-01-02"))

    engine.delete_transaction(created.transaction.id)

    with session_factory() as session:
        assert session.scalar(select(func.count()).select_from(TransactionRecord)) == 1
        assert session.scalar(select(func.count()).select_from(ShareLotRecord)) == 1


def test_fine_grained_prices_survive_reload(session_factory):
    engine = AccountingEngine(SqlAlchemyStateStore(session_factory), clock=lambda: TODAY)
    engine.record_transaction(buy(1_000_000, "0.12345678", "2024-01-01"))
    engine.record_transaction(buy(10, "0.0000000001", "2024-01-02", symbol="PENNY"))

    reloaded = AccountingEngine(SqlAlchemyStateStore(session_factory), clock=lambda: TODAY)

    first, tiny = reloaded.transactions("AAPL")[0], reloaded.transactions("PENNY")[0]
    assert str(first.price) == "0.12345678"
    assert str(first.quantity) == "1000000"
    assert tiny.price == Decimal("0.0000000001")
    [lot] = reloaded.lots.open_lots("AAPL")
    assert lot.remaining_quantity * lot.cost_per_share == Decimal("123456.78")
