from datetime import datetime, timedelta, timezone

import pytest

from coachapp.core.clock import as_utc, utc_now
from coachapp.core.errors import NotFoundError
from coachapp.db import models
from coachapp.repositories import SessionListFilter, SessionRepository


START = datetime(2030, 3, 15, 9, 0, tzinfo=timezone.utc)


def create_session(db, user, coach, starts_at=START, duration=60, status=None):
    repo = SessionRepository(db)
    session = repo.create(
        user_id=user.id,
        coach_id=coach.id,
        scheduled_at=starts_at,
        duration_minutes=duration,
    )
    if status is not None:
        repo.update_status(session.id, status)
    db.commit()
    return session


def test_create_sets_pending_and_end_time(db_session, make_user, make_coach):
    user = make_user()
    coach = make_coach()

    session = create_session(db_session, user, coach, duration=90)

    assert session.status == models.SessionStatus.pending
    assert as_utc(session.ends_at) == START + timedelta(minutes=90)


def test_get_by_id_missing_raises(db_session):
    with pytest.raises(NotFoundError):
        SessionRepository(db_session).get_by_id(404)
    with pytest.raises(NotFoundError):
        SessionRepository(db_session).get_by_id_for_update(404)


def test_list_scopes_by_role_and_orders_by_time(db_session, make_user, make_coach):
    user = make_user()
    other_user = make_user()
    coach = make_coach()
    later = create_session(db_session, user, coach, starts_at=START + timedelta(days=1))
    earlier = create_session(db_session, user, coach, starts_at=START)
    foreign = create_session(db_session, other_user, coach, starts_at=START + timedelta(hours=3))
    repo = SessionRepository(db_session)

    as_user = repo.list(SessionListFilter(actor_id=user.id, role=models.UserRole.user))
    as_coach = repo.list(SessionListFilter(actor_id=coach.id, role=models.UserRole.coach))

    assert [s.id for s in as_user] == [earlier.id, later.id]
    assert [s.id for s in as_coach] == [earlier.id, foreign.id, later.id]


def test_list_filters_status_and_timeframe(db_session, make_user, make_coach):
    user = make_user()
    coach = make_coach()
    now = utc_now()
    past = create_session(db_session, user, coach, starts_at=now - timedelta(days=2))
    running = create_session(db_session, user, coach, starts_at=now - timedelta(minutes=30), duration=60)
    upcoming = create_session(
        db_session, user, coach, starts_at=now + timedelta(days=2),
        status=models.SessionStatus.cancelled,
    )
    repo = SessionRepository(db_session)

    upcoming_ids = [
        s.id
        for s in repo.list(
            SessionListFilter(actor_id=user.id, role=models.UserRole.user, timeframe="upcoming"),
            now=now,
        )
    ]
    past_ids = [
        s.id
        for s in repo.list(
            SessionListFilter(actor_id=user.id, role=models.UserRole.user, timeframe="past"),
            now=now,
        )
    ]
    cancelled_ids = [
        s.id
        for s in repo.list(
            SessionListFilter(
                actor_id=user.id,
                role=models.UserRole.user,
                status=models.SessionStatus.cancelled,
            )
        )
    ]

    assert upcoming_ids == [running.id, upcoming.id]
    assert past_ids == [past.id]
    assert cancelled_ids == [upcoming.id]


def test_update_status_if_current_only_applies_on_match(db_session, make_user, make_coach):
    session = create_session(db_session, make_user(), make_coach())
    repo = SessionRepository(db_session)

    stale = repo.update_status_if_current(
        session.id, models.SessionStatus.confirmed, models.SessionStatus.completed
    )
    applied = repo.update_status_if_current(
        session.id, models.SessionStatus.pending, models.SessionStatus.cancelled
    )

    assert stale is None
    assert applied is not None
    assert applied.status == models.SessionStatus.cancelled


def test_update_status_missing_raises(db_session):
    with pytest.raises(NotFoundError):
        SessionRepository(db_session).update_status(404, models.SessionStatus.cancelled)


def test_has_conflict_overlap_rules(db_session, make_user, make_coach):
    user = make_user()
    coach = make_coach()
    other_coach = make_coach()
    existing = create_session(db_session, user, coach, starts_at=START, duration=90)
    repo = SessionRepository(db_session)

    assert repo.has_conflict(coach.id, START + timedelta(minutes=30), 45)
    assert repo.has_conflict(coach.id, START - timedelta(minutes=30), 45)
    assert not repo.has_conflict(coach.id, START + timedelta(minutes=90), 30)
    assert not repo.has_conflict(coach.id, START - timedelta(minutes=30), 30)
    assert not repo.has_conflict(other_coach.id, START, 90)
    assert not repo.has_conflict(coach.id, START, 90, excluding_session_id=existing.id)


def test_cancelled_sessions_do_not_conflict(db_session, make_user, make_coach):
    user = make_user()
    coach = make_coach()
    create_session(db_session, user, coach, starts_at=START, status=models.SessionStatus.cancelled)

    assert not SessionRepository(db_session).has_conflict(coach.id, START, 60)
