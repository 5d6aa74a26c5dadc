# Overview: Row locking, write-lock acquisition and retry for contended ledger writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_immediate() -> None:
    """
    Take the SQLite write lock at the start of the transaction.

    Without it two finalizations can both read stock before either writes.
    Other databases rely on lock_for_update instead.
    """
    if db.engine.dialect.name != "sqlite":
        return
    # pysqlite opens its own transaction before the first write; BEGIN is
    # only legal when none is open yet on this connection.
    raw = db.session.connection().connection.dbapi_connection
    if raw is not None and raw.in_transaction:
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other error rolls the session back
    and propagates unchanged.
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
            current_app.logger.warning(
                "Concurrency conflict (%s), retry %d/%d", type(exc).__name__, attempt + 1, attempts - 1
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
