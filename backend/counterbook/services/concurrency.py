# Overview: Transaction runner for the business-transaction units; begin, commit or abort, and conflict retry.

from __future__ import annotations

import logging
import time

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


log = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 0.1


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the BEGIN IMMEDIATE in run_in_transaction serializes writers.
    """
    return query.with_for_update()


def _retry_settings(attempts: int | None, backoff_base: float | None) -> tuple[int, float]:
    if has_app_context():
        if attempts is None:
            attempts = current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", DEFAULT_ATTEMPTS)
        if backoff_base is None:
            backoff_base = current_app.config.get("TRANSACTION_RETRY_BACKOFF", DEFAULT_BACKOFF_BASE)
    return (
        attempts if attempts is not None else DEFAULT_ATTEMPTS,
        backoff_base if backoff_base is not None else DEFAULT_BACKOFF_BASE,
    )


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    attempts, backoff_base = _retry_settings(attempts, backoff_base)
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            log.warning(
                "Transaction conflict (attempt %d/%d), retrying: %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _begin_immediate() -> None:
    # SQLite only: take the write lock up front so read-then-write units
    # cannot interleave between their reads and their writes.
    if db.engine.dialect.name != "sqlite":
        return
    conn = db.session.connection()
    dbapi_conn = conn.connection.dbapi_connection
    if not dbapi_conn.in_transaction:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func() as one all-or-nothing unit.

    Commits when func returns; any exception rolls back every staged write
    (counter increments included) and propagates. Conflicts are retried from
    the top, so func must do all of its reads inside.
    """
    def _op():
        try:
            _begin_immediate()
            result = func()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
