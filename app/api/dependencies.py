"""Shared FastAPI dependencies."""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import get_settings
from app.db.init import init_database
from app.db.session import create_db_engine, create_session_factory
from app.services.storage import SqlAlchemyStateStore
from washsafe import AccountingEngine, EngineConfig, InMemoryStateStore
from washsafe.persistence import StateStore

logger = logging.getLogger(__name__)


def build_state_store() -> StateStore:
    settings = get_settings()
    if not settings.persistence_enabled:
        logger.info("Persistence disabled; ledger kept in memory")
        return InMemoryStateStore()
    engine = create_db_engine(settings.database_url)
    init_database(engine)
    return SqlAlchemyStateStore(create_session_factory(engine))


@lru_cache(maxsize=1)
def get_engine() -> AccountingEngine:
    """Return the process-wide accounting engine, loading it on first use."""

    settings = get_settings()
    engine = AccountingEngine(build_state_store(), config=EngineConfig.from_settings(settings))
    logger.info("Accounting engine ready with %d transactions", len(engine.ledger))
    return engine


__all__ = ["build_state_store", "get_engine"]
