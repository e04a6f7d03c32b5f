"""Mutual exclusion and time-window helpers shared by the stores.

Booking for a coach is serialized with a transaction-scoped lock keyed by
the coach id. PostgreSQL provides ``pg_advisory_xact_lock`` for exactly this.
SQLite has no row locks and drops ``FOR UPDATE``, so there the lock is the
database write lock, taken by a no-op update of the coach's ``users`` row.
Other backends lock that row with ``SELECT ... FOR UPDATE``.
"""

from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import models

UNIQUE_VIOLATION_SQLSTATE = "23505"


def session_end(starts_at: datetime, duration_minutes: int) -> datetime:
    return starts_at + timedelta(minutes=duration_minutes)


def windows_overlap(
    start_a: datetime,
    minutes_a: int,
    start_b: datetime,
    minutes_b: int,
) -> bool:
    return start_a < session_end(start_b, minutes_b) and start_b < session_end(start_a, minutes_a)


def _dialect(db: Session) -> str:
    return db.get_bind().dialect.name


def _touch_user_row(db: Session, user_id: int) -> None:
    db.execute(
        update(models.User)
        .where(models.User.id == user_id)
        .values(email=models.User.email)
        .execution_options(synchronize_session=False)
    )


def hold_write_lock(db: Session, user_id: int) -> None:
    """On SQLite, take the database write lock for the rest of the transaction.

    The first write of a SQLite transaction blocks every other writer until
    commit or rollback, which stands in for the row locks ``FOR UPDATE``
    gives elsewhere. A no-op on other backends.
    """
    if _dialect(db) == "sqlite":
        _touch_user_row(db, user_id)


def acquire_advisory_lock(db: Session, key: int) -> None:
    """Block until this transaction holds the lock for ``key``.

    The lock is released on commit or rollback; there is no explicit unlock.
    """
    dialect = _dialect(db)
    if dialect == "postgresql":
        db.execute(select(func.pg_advisory_xact_lock(key)))
        return
    if dialect == "sqlite":
        _touch_user_row(db, key)
        return
    db.execute(
        select(models.User.id).where(models.User.id == key).with_for_update()
    )


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return "UNIQUE constraint failed" in str(orig)


def violated_constraint(exc: IntegrityError) -> str | None:
    diag = getattr(exc.orig, "diag", None)
    return getattr(diag, "constraint_name", None)
