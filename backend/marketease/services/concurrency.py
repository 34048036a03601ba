# Overview: Transaction helpers: row locking, retry on contention, and storage error translation.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class StorageError(RuntimeError):
    """Infrastructure failure; the transaction was rolled back. Message stays generic."""

    def __init__(self, message: str = "Database operation failed."):
        super().__init__(message)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_immediate() covers it.
    """
    return query.with_for_update()


def begin_immediate() -> None:
    """
    Take the SQLite write lock up front so read-check-write sequences from
    concurrent sessions serialize. No-op on databases with row locks.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    All-or-nothing unit of work.

    func must do its writes and commit. Any exception rolls the session back
    before it propagates; SQLAlchemy errors surface as StorageError.
    """
    try:
        return run_with_retry(func, attempts=attempts, backoff_base=backoff_base)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc
    except Exception:
        db.session.rollback()
        raise
