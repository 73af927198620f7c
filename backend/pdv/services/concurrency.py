# Overview: Transaction helpers shared by every service; row locking, write-transaction start and retry.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite, begin_immediate() provides the equivalent serialization.
    """
    return query.with_for_update()


def begin_immediate() -> None:
    """
    Take the database write lock before the first read of a check-then-act.

    SQLite defers locking until the first write, so two sessions could both
    read the same balance and then both write. BEGIN IMMEDIATE closes that
    window. No-op on other dialects (they honor FOR UPDATE) and when the
    session is already inside a transaction.
    """
    if db.engine.dialect.name != "sqlite":
        return
    dbapi_conn = db.session.connection().connection.dbapi_connection
    if getattr(dbapi_conn, "in_transaction", True):
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute one unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates, so a failed operation leaves no partial write.
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
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
