"""Balance ledgers backing the metered endpoints.

A ledger offers two primitives: a point read of an account balance and an
atomic delta update. The orchestrator only ever debits through
``atomic_add`` so that concurrent callers for the same account each observe a
distinct resulting balance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from autobet_meter.core.errors import (
    AccountNotFoundError,
    InsufficientBalanceError,
    LedgerUnavailableError,
)
from autobet_meter.core.settings import settings
from autobet_meter.db.session import SessionLocal
from autobet_meter.models import Account

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceRecord:
    """Balance of one account at the moment it was read or updated."""

    user_id: str
    balance: int


class BalanceLedger(Protocol):
    def get(self, user_id: str) -> BalanceRecord: ...

    def atomic_add(
        self, user_id: str, delta: int, *, require_positive: bool = False
    ) -> BalanceRecord: ...


class SqlBalanceLedger:
    """Ledger stored in the ``autobet`` table through SQLAlchemy."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def get(self, user_id: str) -> BalanceRecord:
        """Return the balance for ``user_id`` or raise AccountNotFoundError."""
        try:
            with self._session_factory() as session:
                balance = session.execute(
                    select(Account.balance).where(Account.id == user_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Ledger read failed for %s: %s", user_id, exc)
            raise LedgerUnavailableError() from exc

        if balance is None:
            raise AccountNotFoundError()
        return BalanceRecord(user_id=user_id, balance=int(balance))

    def atomic_add(
        self, user_id: str, delta: int, *, require_positive: bool = False
    ) -> BalanceRecord:
        """Apply ``delta`` in a single UPDATE and return the resulting balance.

        With ``require_positive`` the update only applies while the stored
        balance is above zero; a missed guard raises InsufficientBalanceError.
        """
        stmt = (
            update(Account)
            .where(Account.id == user_id)
            .values(balance=Account.balance + delta)
            .returning(Account.balance)
            .execution_options(synchronize_session=False)
        )
        if require_positive:
            stmt = stmt.where(Account.balance > 0)

        try:
            with self._session_factory() as session:
                balance = session.execute(stmt).scalar_one_or_none()
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Ledger update failed for %s: %s", user_id, exc)
            raise LedgerUnavailableError() from exc

        if balance is None:
            # Either the account is missing or the guard rejected the debit.
            self.get(user_id)
            raise InsufficientBalanceError()
        return BalanceRecord(user_id=user_id, balance=int(balance))


# Returns nil for a missing account, false when the positive-balance guard
# fails, otherwise the new balance.
_ATOMIC_ADD_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return nil
end
if ARGV[2] == '1' then
    local current = tonumber(redis.call('HGET', KEYS[1], 'balance') or '0')
    if current <= 0 then
        return false
    end
end
return redis.call('HINCRBY', KEYS[1], 'balance', ARGV[1])
"""


class RedisBalanceLedger:
    """Ledger kept in Redis hashes named ``autobet:{user_id}``."""

    def __init__(self, client: Any | None = None) -> None:
        self._redis = client if client is not None else redis.from_url(settings.redis_url)
        self._atomic_add = self._redis.register_script(_ATOMIC_ADD_SCRIPT)

    @staticmethod
    def _key(user_id: str) -> str:
        return f"autobet:{user_id}"

    def get(self, user_id: str) -> BalanceRecord:
        try:
            raw = self._redis.hget(self._key(user_id), "balance")
        except redis.RedisError as exc:
            logger.error("Ledger read failed for %s: %s", user_id, exc)
            raise LedgerUnavailableError() from exc

        if raw is None:
            raise AccountNotFoundError()
        return BalanceRecord(user_id=user_id, balance=int(raw))

    def atomic_add(
        self, user_id: str, delta: int, *, require_positive: bool = False
    ) -> BalanceRecord:
        key = self._key(user_id)
        try:
            result = self._atomic_add(
                keys=[key], args=[int(delta), "1" if require_positive else "0"]
            )
            if result is None:
                # Lua false and nil both arrive as None; tell them apart.
                if not self._redis.exists(key):
                    raise AccountNotFoundError()
                raise InsufficientBalanceError()
        except redis.RedisError as exc:
            logger.error("Ledger update failed for %s: %s", user_id, exc)
            raise LedgerUnavailableError() from exc

        return BalanceRecord(user_id=user_id, balance=int(result))


def build_ledger() -> BalanceLedger:
    """Return the ledger selected by ``LEDGER_BACKEND``."""
    if settings.ledger_backend == "redis":
        return RedisBalanceLedger()
    return SqlBalanceLedger()
