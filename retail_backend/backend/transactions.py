# backend/transactions.py

"""
======================================================
PATH: backend/transactions.py
======================================================
SERIALIZABLE TRANSACTION HELPER

Purpose:
- Run a unit of work at SERIALIZABLE isolation with a bounded lock wait.
- Translate store-level contention failures into ONE retryable domain error.

Rules:
- Isolation + lock timeout are only set when we open the OUTERMOST transaction
  (PostgreSQL rejects SET TRANSACTION after the first query).
- Nested use degrades to a plain savepoint inside the caller's transaction.
- Contention failures (serialization failure, deadlock, lock timeout) raise
  ConflictError; everything else propagates unchanged.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import DatabaseError, transaction

logger = logging.getLogger(__name__)

# SQLSTATE codes that mean "someone else won the race, try again".
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
LOCK_NOT_AVAILABLE = "55P03"

RETRYABLE_SQLSTATES = {SERIALIZATION_FAILURE, DEADLOCK_DETECTED, LOCK_NOT_AVAILABLE}


class ConflictError(Exception):
    """
    Retryable contention failure (lock wait timeout / serialization failure).

    No partial writes survive: the transaction that raised it was rolled back.
    Callers may retry the whole operation from the start.
    """

    def __init__(self, message: str, *, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


def _sqlstate(exc: BaseException) -> str | None:
    # psycopg2 exposes pgcode, psycopg (3) exposes sqlstate; Django keeps the driver error as __cause__.
    for candidate in (exc, getattr(exc, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "pgcode", None) or getattr(candidate, "sqlstate", None)
        if code:
            return str(code)
    return None


def is_retryable_conflict(exc: BaseException) -> bool:
    code = _sqlstate(exc)
    if code in RETRYABLE_SQLSTATES:
        return True

    # SQLite has no SQLSTATE; a busy database is its only contention signal.
    return "database is locked" in str(exc).lower()


def _apply_isolation(connection) -> None:
    if connection.vendor != "postgresql":
        return

    timeout_ms = int(getattr(settings, "DB_LOCK_TIMEOUT_MS", 5000) or 0)
    with connection.cursor() as cursor:
        cursor.execute("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE")
        if timeout_ms > 0:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f"{timeout_ms}ms"],
            )


@contextmanager
def serializable_atomic(using: str | None = None):
    """
    Usage:
        with serializable_atomic():
            ... read-modify-write under row locks ...

    Raises:
        ConflictError on lock timeout / serialization failure / deadlock.
    """
    connection = transaction.get_connection(using)
    outermost = not connection.in_atomic_block

    try:
        with transaction.atomic(using=using):
            if outermost:
                _apply_isolation(connection)
            yield
    except DatabaseError as exc:
        if not is_retryable_conflict(exc):
            raise
        code = _sqlstate(exc)
        logger.warning("Transaction aborted by contention sqlstate=%s error=%s", code, exc)
        raise ConflictError(
            "The operation conflicted with a concurrent request. Please retry.",
            sqlstate=code,
        ) from exc
