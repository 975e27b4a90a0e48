"""Append-only transaction log and the normalization applied at its boundary."""
from __future__ import annotations

import logging
import time
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Mapping

from .errors import TransactionValidationError
from .models import DEFAULT_ACCOUNT, MAX_DECIMAL_PLACES, Transaction, TransactionType, decimal_places

logger = logging.getLogger(__name__)


def new_transaction_id() -> str:
    """Creation timestamp plus a random tie-breaker; sorts in creation order."""

    return f"{time.time_ns():020d}-{uuid.uuid4().hex[:8]}"


def parse_trade_date(value: Any) -> date:
    """Coerce ``value`` to a trade date.

    Raises ``ValueError`` when the value cannot be read as a date at all.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return date.fromisoformat(text[:10])
    raise ValueError(f"Unparseable trade date: {value!r}")


def _to_decimal(field: str, value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise TransactionValidationError(field, "must be a number")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise TransactionValidationError(field, f"not a number: {value!r}") from exc
    if not number.is_finite():
        raise TransactionValidationError(field, "must be finite")
    return number


def _get(raw: Any, key: str, default: Any = None) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(key, default)
    return getattr(raw, key, default)


class Ledger:
    """Date-ordered log of normalized buy/sell records.

    Insertion order is kept but never used for accounting: callers consult
    :meth:`ordered` or :meth:`replay_order`.
    """

    def __init__(self, transactions: Iterable[Transaction] = (), *, default_account: str = DEFAULT_ACCOUNT) -> None:
        self.default_account = default_account
        self._transactions: list[Transaction] = []
        self._by_id: dict[str, Transaction] = {}
        for tx in transactions:
            self.append(tx)

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        return transaction_id in self._by_id

    def normalize(self, raw: Any) -> Transaction:
        """Validate ``raw`` and return a new :class:`Transaction` without recording it."""

        symbol = _get(raw, "symbol")
        if not isinstance(symbol, str) or not symbol.strip():
            raise TransactionValidationError("symbol", "must be a non-empty ticker")
        symbol = symbol.strip().upper()

        raw_type = _get(raw, "type")
        if isinstance(raw_type, TransactionType):
            tx_type = raw_type
        else:
            try:
                tx_type = TransactionType(str(raw_type).strip().lower())
            except ValueError as exc:
                raise TransactionValidationError("type", f"unsupported type {raw_type!r}") from exc

        quantity = _to_decimal("quantity", _get(raw, "quantity"))
        if quantity <= 0:
            raise TransactionValidationError("quantity", "must be positive")
        if quantity != quantity.to_integral_value():
            raise TransactionValidationError("quantity", "must be a whole number of shares")
        quantity = quantity.quantize(Decimal("1"))

        price = _to_decimal("price", _get(raw, "price"))
        if price <= 0:
            raise TransactionValidationError("price", "must be positive")
        if decimal_places(price) > MAX_DECIMAL_PLACES:
            raise TransactionValidationError("price", f"at most {MAX_DECIMAL_PLACES} decimal places are supported")

        raw_date = _get(raw, "date")
        if raw_date is None:
            raise TransactionValidationError("date", "is required")
        try:
            trade_date = parse_trade_date(raw_date)
        except ValueError as exc:
            raise TransactionValidationError("date", str(exc)) from exc

        account = _get(raw, "account")
        account = account.strip() if isinstance(account, str) and account.strip() else self.default_account

        tx_id = _get(raw, "id")
        created_at = _get(raw, "created_at")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError as exc:
                raise TransactionValidationError("created_at", str(exc)) from exc
        return Transaction(
            id=str(tx_id) if tx_id else new_transaction_id(),
            symbol=symbol,
            type=tx_type,
            quantity=quantity,
            price=price,
            date=trade_date,
            account=account,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def record(self, raw: Any) -> Transaction:
        tx = self.normalize(raw)
        self.append(tx)
        return tx

    def append(self, tx: Transaction) -> None:
        if tx.id in self._by_id:
            raise ValueError(f"Duplicate transaction id {tx.id}")
        self._transactions.append(tx)
        self._by_id[tx.id] = tx
        logger.debug("Recorded %s %s %s @ %s on %s", tx.type.value, tx.quantity, tx.symbol, tx.price, tx.date)

    def get(self, transaction_id: str) -> Transaction | None:
        return self._by_id.get(transaction_id)

    def remove(self, transaction_id: str) -> Transaction | None:
        tx = self._by_id.pop(transaction_id, None)
        if tx is not None:
            self._transactions.remove(tx)
        return tx

    def clear(self) -> None:
        self._transactions.clear()
        self._by_id.clear()

    def symbols(self) -> list[str]:
        return sorted({tx.symbol for tx in self._transactions})

    def ordered(self, symbol: str | None = None) -> list[Transaction]:
        """Transactions sorted by ``(date, id)``, optionally for one symbol."""

        items = self._select(symbol)
        return sorted(items, key=Transaction.ledger_key)

    def replay_order(self, symbol: str | None = None, *, before: date | None = None) -> list[Transaction]:
        """Transactions in rebuild order; ``before`` keeps only dates strictly earlier."""

        items = self._select(symbol)
        if before is not None:
            items = [tx for tx in items if tx.date < before]
        return sorted(items, key=Transaction.replay_key)

    def preceding(self, tx: Transaction) -> list[Transaction]:
        """Same-symbol transactions that replay before ``tx``."""

        key = tx.replay_key()
        return [other for other in self.replay_order(tx.symbol) if other.replay_key() < key]

    def is_latest(self, tx: Transaction) -> bool:
        """True when ``tx`` would replay after every recorded trade of its symbol."""

        key = tx.replay_key()
        return all(other.replay_key() < key for other in self._select(tx.symbol))

    def _select(self, symbol: str | None) -> list[Transaction]:
        if symbol is None:
            return list(self._transactions)
        symbol = symbol.upper()
        return [tx for tx in self._transactions if tx.symbol == symbol]


__all__ = ["Ledger", "new_transaction_id", "parse_trade_date"]
