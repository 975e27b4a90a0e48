"""Bulk-import normalized transaction records from a JSON file."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from app.config import get_settings
from app.core.logging import setup_logging
from app.db.init import init_database
from app.db.session import create_db_engine, create_session_factory
from app.services.storage import SqlAlchemyStateStore
from washsafe import AccountingEngine, EngineConfig


def _load_records(path: Path) -> list[dict]:
    payload = json.loads(path.read_text())
    if isinstance(payload, dict):
        payload = payload.get("transactions") or []
    if not isinstance(payload, list):
        raise SystemExit(f"Expected a list of transactions in {path}")
    return payload


def main() -> None:
    parser = argparse.ArgumentParser(description="Import normalized buy/sell records into the WashSafe ledger")
    parser.add_argument("source", help="JSON file: a list of records or an object with a 'transactions' list")
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--strict", action="store_true", help="Reject oversells instead of recording a shortfall")
    args = parser.parse_args()

    source = Path(args.source)
    if not source.exists():
        raise SystemExit(f"Import file not found: {source}")

    settings = get_settings()
    setup_logging(settings.log_level)
    db_engine = create_db_engine(args.database_url or settings.database_url)
    init_database(db_engine)
    engine = AccountingEngine(
        SqlAlchemyStateStore(create_session_factory(db_engine)),
        config=EngineConfig.from_settings(settings),
    )
    report = engine.import_transactions(_load_records(source), force=not args.strict)
    print(
        f"Imported {report.imported} of {report.received} records from {source} "
        f"({report.duplicates} duplicates, {report.invalid} invalid, "
        f"{report.rejected} rejected, {report.shortfalls} with shortfalls)"
    )
    for error in report.errors:
        print(f"  {error.code.value}: {error.message}")


if __name__ == "__main__":
    main()
