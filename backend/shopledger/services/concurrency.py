# Overview: Transaction and retry primitives shared by every ledger write.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerError, StorageFailure
from ..extensions import db

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    takes the database write lock up front instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Start the unit of work as a writer.

    On SQLite this issues BEGIN IMMEDIATE so concurrent writers queue on the
    database lock before reading anything they will later update. Other
    backends rely on row locks and conditional UPDATEs.
    """
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.dbapi_connection
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=RETRYABLE_ERRORS):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts), plus any extra exception types passed in
    retry_on.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying transaction after %s (attempt %d/%d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, label: str, retry_on=(), attempts: int | None = None):
    """
    Run func() as one all-or-nothing unit of work.

    Begins a write transaction, calls func, commits once. Any exception
    rolls everything back. Concurrency conflicts (and the extra retry_on
    types) re-run the whole unit; SQLAlchemy errors that survive the retries
    surface as StorageFailure. LedgerError subclasses propagate unchanged.
    """
    if attempts is None:
        attempts = int(current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", 3))

    def _op():
        try:
            begin_write_transaction()
            result = func()
            db.session.commit()
        except BaseException:
            db.session.rollback()
            raise
        return result

    try:
        return run_with_retry(_op, attempts=attempts, retry_on=RETRYABLE_ERRORS + tuple(retry_on))
    except LedgerError:
        raise
    except SQLAlchemyError as exc:
        current_app.logger.error("%s failed to commit: %s", label, exc)
        raise StorageFailure(
            f"{label} could not be completed, please retry",
            details={"reason": type(exc).__name__},
        ) from exc
