# Overview: Transaction boundary for every mutating operation: locking, retries, deadlines.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import DomainError, OperationTimeoutError, StorageError


_TIMEOUT_MARKERS = (
    "statement timeout",
    "canceling statement",
    "lock timeout",
    "querycanceled",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the writer lock comes from BEGIN IMMEDIATE (see run_in_transaction)
    and version_id columns catch the rest.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Timeouts are not retried.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if _is_timeout(exc) or attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def resolve_timeout(timeout: float | None) -> float | None:
    """Caller-supplied timeout wins; otherwise OPERATION_TIMEOUT_SECONDS."""
    if timeout is None:
        timeout = current_app.config.get("OPERATION_TIMEOUT_SECONDS")
    if timeout is None:
        return None
    if timeout <= 0:
        raise OperationTimeoutError("Operation timed out before it started")
    return float(timeout)


def run_in_transaction(
    func,
    *,
    timeout: float | None = None,
    immediate: bool = False,
    attempts: int = 3,
    backoff_base: float = 0.1,
):
    """
    Run func as one atomic unit: everything it flushes commits together or
    not at all.

    - immediate=True takes the SQLite writer lock up front (BEGIN IMMEDIATE)
      so read-check-write sequences cannot interleave.
    - timeout bounds the whole operation. PostgreSQL also gets a local
      statement_timeout. Past the deadline the transaction is rolled back
      and OperationTimeoutError is raised; nothing is committed.
    - Domain errors roll back and propagate unchanged. Database failures
      roll back and surface as StorageError.
    """
    timeout = resolve_timeout(timeout)
    deadline = time.monotonic() + timeout if timeout is not None else None

    def _op():
        dialect = db.engine.dialect.name
        if immediate and dialect == "sqlite" and not db.session().in_transaction():
            db.session.execute(text("BEGIN IMMEDIATE"))
        if deadline is not None and dialect == "postgresql":
            remaining_ms = max(1, int((deadline - time.monotonic()) * 1000))
            db.session.execute(text(f"SET LOCAL statement_timeout = {remaining_ms}"))

        result = func()
        db.session.flush()

        if deadline is not None and time.monotonic() > deadline:
            raise OperationTimeoutError(f"Operation exceeded its {timeout:g}s deadline and was rolled back")

        db.session.commit()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except DomainError:
        db.session.rollback()
        raise
    except OperationalError as exc:
        db.session.rollback()
        if _is_timeout(exc):
            raise OperationTimeoutError("Operation timed out and was rolled back") from exc
        raise StorageError("Storage unavailable") from exc
    except StaleDataError as exc:
        db.session.rollback()
        raise StorageError("Concurrent update conflict, please retry") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError("Storage error") from exc


def _is_timeout(exc: Exception) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)
