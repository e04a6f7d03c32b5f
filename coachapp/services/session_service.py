"""Booking and payment lifecycle for coaching sessions.

Every write happens inside a transaction on the caller's ``Session``. Booking
serializes per coach through an advisory lock, payment capture takes row locks
on the session/payment pair, and plain status edits rely on compare-and-swap
updates so a concurrent writer makes the loser fail instead of overwrite.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from ..core.clock import as_utc, utc_now
from ..core.constants import (
    AMOUNT_QUANTUM,
    BOOKING_GRACE_PERIOD,
    MINUTES_PER_HOUR,
    SESSION_TIMEFRAMES,
    STATUS_ALIASES,
)
from ..core.errors import (
    CoachNotFoundError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateTransitionError,
    InvalidStatusError,
    NotFoundError,
)
from ..db import models
from ..db.models import PaymentStatus, SessionStatus, UserRole
from ..repositories import (
    CoachProfileDirectory,
    PaymentRepository,
    SessionListFilter,
    SessionRepository,
    UserDirectory,
)
from ..repositories.locks import acquire_advisory_lock, hold_write_lock, session_end

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookSessionInput:
    coach_id: int
    scheduled_at: datetime
    duration_minutes: int
    notes: str | None = None


@dataclass(frozen=True)
class SessionDetail:
    session: models.CoachingSession
    payment: models.Payment | None = None


# target status -> statuses it may be reached from, per role
_TRANSITIONS: dict[UserRole, dict[SessionStatus, frozenset[SessionStatus]]] = {
    UserRole.user: {
        SessionStatus.cancelled: frozenset({SessionStatus.pending, SessionStatus.confirmed}),
    },
    UserRole.coach: {
        SessionStatus.confirmed: frozenset({SessionStatus.pending}),
        SessionStatus.completed: frozenset({SessionStatus.confirmed}),
        SessionStatus.cancelled: frozenset({SessionStatus.pending, SessionStatus.confirmed}),
    },
}


@contextmanager
def _transaction(db: Session):
    """Run the block in a transaction of its own, committed when the block exits cleanly.

    A transaction already open on ``db``, typically one autobegun by an earlier
    read, is committed first.
    """
    if db.in_transaction():
        db.commit()
    with db.begin():
        yield


def _coerce_role(role: UserRole | str) -> UserRole:
    try:
        return UserRole(role)
    except ValueError as exc:
        raise ForbiddenError("Forbidden") from exc


def _can_access(role: UserRole, actor_id: int, session: models.CoachingSession) -> bool:
    participant = {
        UserRole.user: session.user_id,
        UserRole.coach: session.coach_id,
    }[role]
    return participant == actor_id


def compute_amount(hourly_rate: Decimal, duration_minutes: int) -> Decimal:
    amount = Decimal(hourly_rate) * duration_minutes / MINUTES_PER_HOUR
    return amount.quantize(AMOUNT_QUANTUM)


def normalize_requested_status(token: str) -> SessionStatus:
    normalized = STATUS_ALIASES.get((token or "").strip().lower())
    if normalized is None:
        raise InvalidStatusError("invalid status")
    return SessionStatus(normalized)


def validate_status_transition(
    role: UserRole,
    session: models.CoachingSession,
    next_status: SessionStatus,
    now: datetime | None = None,
) -> None:
    allowed = _TRANSITIONS[role]
    if next_status not in allowed:
        raise ForbiddenError("Forbidden")
    if session.status not in allowed[next_status]:
        raise InvalidStateTransitionError("invalid state transition")
    if next_status == SessionStatus.completed:
        ends_at = session_end(as_utc(session.scheduled_at), session.duration_minutes)
        if ends_at > as_utc(now or utc_now()):
            raise InvalidStateTransitionError("session has not ended yet")


def _validate_booking_input(actor_user_id: int, data: BookSessionInput) -> None:
    if data.coach_id <= 0:
        raise InvalidInputError("coach_id must be positive")
    if data.duration_minutes <= 0:
        raise InvalidInputError("duration_minutes must be greater than 0")
    if as_utc(data.scheduled_at) < utc_now() - BOOKING_GRACE_PERIOD:
        raise InvalidInputError("scheduled_at must not be in the past")
    if actor_user_id == data.coach_id:
        raise InvalidInputError("cannot book a session with yourself")


def _resolve_hourly_rate(db: Session, coach_id: int) -> Decimal:
    try:
        coach = UserDirectory(db).get_by_id(coach_id)
    except NotFoundError as exc:
        raise CoachNotFoundError("Coach not found") from exc
    if coach.role != UserRole.coach:
        raise InvalidInputError("requested account is not a coach")
    try:
        profile = CoachProfileDirectory(db).get_by_user_id(coach_id)
    except NotFoundError as exc:
        raise CoachNotFoundError("Coach not found") from exc
    if not profile.onboarding_complete:
        raise InvalidInputError("coach has not completed onboarding")
    if profile.hourly_rate is None or profile.hourly_rate <= 0:
        raise InvalidInputError("coach has no hourly rate")
    return profile.hourly_rate


def book_session(db: Session, actor_user_id: int, data: BookSessionInput) -> SessionDetail:
    _validate_booking_input(actor_user_id, data)
    scheduled_at = as_utc(data.scheduled_at)
    with _transaction(db):
        hourly_rate = _resolve_hourly_rate(db, data.coach_id)
        amount = compute_amount(hourly_rate, data.duration_minutes)

        sessions = SessionRepository(db)
        payments = PaymentRepository(db)
        acquire_advisory_lock(db, data.coach_id)
        if sessions.has_conflict(data.coach_id, scheduled_at, data.duration_minutes):
            logger.warning(
                "Booking conflict",
                extra={"coach_id": data.coach_id, "scheduled_at": scheduled_at.isoformat()},
            )
            raise ConflictError("Requested time conflicts with another session")
        session = sessions.create(
            user_id=actor_user_id,
            coach_id=data.coach_id,
            scheduled_at=scheduled_at,
            duration_minutes=data.duration_minutes,
            notes=data.notes,
        )
        payment = payments.create(
            session_id=session.id,
            user_id=actor_user_id,
            coach_id=data.coach_id,
            amount=amount,
            status=PaymentStatus.placeholder,
        )
    logger.info(
        "Session booked",
        extra={"session_id": session.id, "coach_id": data.coach_id, "amount": str(amount)},
    )
    return SessionDetail(session=session, payment=payment)


def check_availability(
    db: Session, coach_id: int, requested_at: datetime, duration_minutes: int
) -> bool:
    if coach_id <= 0 or duration_minutes <= 0:
        raise InvalidInputError("coach_id and duration_minutes must be positive")
    return not SessionRepository(db).has_conflict(coach_id, requested_at, duration_minutes)


def list_sessions(
    db: Session,
    actor_id: int,
    role: UserRole | str,
    status: SessionStatus | str | None = None,
    timeframe: str | None = None,
) -> list[SessionDetail]:
    role = _coerce_role(role)
    if status:
        try:
            status = SessionStatus(status)
        except ValueError as exc:
            raise InvalidStatusError("invalid status") from exc
    if timeframe and timeframe not in SESSION_TIMEFRAMES:
        raise InvalidInputError("timeframe must be upcoming or past")
    sessions = SessionRepository(db).list(
        SessionListFilter(
            actor_id=actor_id,
            role=role,
            status=status or None,
            timeframe=timeframe or None,
        )
    )
    payments = PaymentRepository(db).list_by_session_ids(session.id for session in sessions)
    return [SessionDetail(session=session, payment=payments.get(session.id)) for session in sessions]


def get_session(
    db: Session, actor_id: int, role: UserRole | str, session_id: int
) -> SessionDetail:
    role = _coerce_role(role)
    session = SessionRepository(db).get_by_id(session_id)
    if not _can_access(role, actor_id, session):
        raise ForbiddenError("Forbidden")
    try:
        payment = PaymentRepository(db).get_by_session_id(session_id)
    except NotFoundError:
        payment = None
    return SessionDetail(session=session, payment=payment)


def update_status(
    db: Session,
    actor_id: int,
    role: UserRole | str,
    session_id: int,
    requested_status: str,
) -> SessionDetail:
    role = _coerce_role(role)
    next_status = normalize_requested_status(requested_status)
    with _transaction(db):
        sessions = SessionRepository(db)
        session = sessions.get_by_id(session_id)
        if not _can_access(role, actor_id, session):
            raise ForbiddenError("Forbidden")
        current_status = session.status
        validate_status_transition(role, session, next_status)
        if next_status == SessionStatus.confirmed:
            # PayForSession confirms and marks paid in one step, so a pending
            # session with a paid payment never arises through this module.
            # The gate stays for payments settled by other means.
            try:
                payment = PaymentRepository(db).get_by_session_id(session_id)
            except NotFoundError as exc:
                raise InvalidStateTransitionError("session has no payment") from exc
            if payment.status != PaymentStatus.paid:
                raise InvalidStateTransitionError("session is not paid")
        updated = sessions.update_status_if_current(session_id, current_status, next_status)
        if updated is None:
            logger.warning(
                "Session status changed concurrently",
                extra={"session_id": session_id, "expected": current_status.value},
            )
            raise InvalidStateTransitionError("invalid state transition")
    logger.info(
        "Session status updated",
        extra={
            "session_id": session_id,
            "from_status": current_status.value,
            "to_status": next_status.value,
            "actor_role": role.value,
        },
    )
    return get_session(db, actor_id, role, session_id)


def pay_for_session(
    db: Session, actor_id: int, role: UserRole | str, session_id: int
) -> SessionDetail:
    role = _coerce_role(role)
    # Checked before any lookup: a coach gets Forbidden even for an unknown session
    if role != UserRole.user:
        raise ForbiddenError("Forbidden")
    with _transaction(db):
        sessions = SessionRepository(db)
        payments = PaymentRepository(db)
        hold_write_lock(db, actor_id)
        session = sessions.get_by_id_for_update(session_id)
        if session.user_id != actor_id:
            raise ForbiddenError("Forbidden")
        payment = payments.get_by_session_id_for_update(session_id)
        if payment.status == PaymentStatus.paid:
            return SessionDetail(session=session, payment=payment)
        if session.status != SessionStatus.pending:
            raise InvalidStateTransitionError("session is not pending")
        if as_utc(session.scheduled_at) <= utc_now():
            raise InvalidStateTransitionError("session has already started")

        if payments.update_status_if_current(
            payment.id, PaymentStatus.placeholder, PaymentStatus.paid
        ) is None:
            raise InvalidStateTransitionError("payment changed concurrently")
        if sessions.update_status_if_current(
            session_id, SessionStatus.pending, SessionStatus.confirmed
        ) is None:
            raise InvalidStateTransitionError("session changed concurrently")
    logger.info(
        "Session payment captured",
        extra={"session_id": session_id, "payment_id": payment.id, "amount": str(payment.amount)},
    )
    return get_session(db, actor_id, role, session_id)
