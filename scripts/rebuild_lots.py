"""Rebuild share lots from the stored ledger and report inconsistencies."""

from __future__ import annotations

import argparse

from app.config import get_settings
from app.core.logging import setup_logging
from app.db.init import init_database
from app.db.session import create_db_engine, create_session_factory
from app.services.storage import SqlAlchemyStateStore
from washsafe import AccountingEngine, EngineConfig


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay the ledger and regenerate all share lots")
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--symbol", default=None, help="Only print lots for this symbol")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level)
    db_engine = create_db_engine(args.database_url or settings.database_url)
    init_database(db_engine)
    engine = AccountingEngine(
        SqlAlchemyStateStore(create_session_factory(db_engine)),
        config=EngineConfig.from_settings(settings),
    )
    report = engine.rebuild()
    engine.save()
    print(
        f"Rebuilt {report.open_lots} open lots from {report.lots_created} buys "
        f"and {report.sells_replayed} sells"
    )
    for issue in report.issues:
        print(f"  {issue.transaction_id}: {issue.message}")

    symbols = [args.symbol.upper()] if args.symbol else engine.lots.symbols()
    for symbol in symbols:
        for lot in engine.lots.open_lots(symbol):
            print(
                f"  {symbol} {lot.purchase_date.isoformat()} "
                f"{lot.remaining_quantity}/{lot.original_quantity} @ {lot.cost_per_share}"
            )


if __name__ == "__main__":
    main()
