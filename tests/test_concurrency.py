import threading
import time
from datetime import datetime, timezone
from decimal import Decimal

from coachapp.core.errors import ConflictError
from coachapp.db import models
from coachapp.repositories import PaymentRepository, SessionRepository
from coachapp.services import session_service
from coachapp.services.session_service import BookSessionInput

SCENARIO_START = datetime(2030, 3, 15, 9, 0, tzinfo=timezone.utc)
RACE_WINDOW_SECONDS = 0.3


def seed(factory, users=2):
    with factory() as db:
        coach = models.User(email="coach@example.com", role=models.UserRole.coach)
        db.add(coach)
        db.flush()
        db.add(models.CoachProfile(user_id=coach.id, hourly_rate=Decimal(120), onboarding_complete=True))
        clients = [
            models.User(email=f"user{index}@example.com", role=models.UserRole.user)
            for index in range(users)
        ]
        db.add_all(clients)
        db.commit()
        return coach.id, [client.id for client in clients]


def run_together(*targets):
    barrier = threading.Barrier(len(targets))
    errors = []

    def runner(target):
        barrier.wait()
        try:
            target()
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=runner, args=(target,)) for target in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert errors == []


def test_concurrent_bookings_for_one_coach_commit_at_most_one(file_session_factory, monkeypatch):
    coach_id, user_ids = seed(file_session_factory)
    original_has_conflict = SessionRepository.has_conflict

    def slow_has_conflict(self, *args, **kwargs):
        found = original_has_conflict(self, *args, **kwargs)
        time.sleep(RACE_WINDOW_SECONDS)
        return found

    monkeypatch.setattr(SessionRepository, "has_conflict", slow_has_conflict)
    results = []

    def book(user_id):
        def attempt():
            with file_session_factory() as db:
                try:
                    session_service.book_session(
                        db,
                        user_id,
                        BookSessionInput(coach_id=coach_id, scheduled_at=SCENARIO_START, duration_minutes=90),
                    )
                    results.append("ok")
                except ConflictError:
                    results.append("conflict")

        return attempt

    run_together(*(book(user_id) for user_id in user_ids))

    assert sorted(results) == ["conflict", "ok"]
    with file_session_factory() as db:
        assert db.query(models.CoachingSession).count() == 1
        assert db.query(models.Payment).count() == 1


def test_concurrent_payment_waits_then_sees_paid(file_session_factory, monkeypatch):
    coach_id, (user_id,) = seed(file_session_factory, users=1)
    with file_session_factory() as db:
        booked = session_service.book_session(
            db,
            user_id,
            BookSessionInput(coach_id=coach_id, scheduled_at=SCENARIO_START, duration_minutes=90),
        )
    session_id = booked.session.id

    original_swap = PaymentRepository.update_status_if_current
    swaps = []

    def slow_swap(self, *args):
        swaps.append(args)
        time.sleep(RACE_WINDOW_SECONDS)
        return original_swap(self, *args)

    monkeypatch.setattr(PaymentRepository, "update_status_if_current", slow_swap)
    outcomes = []

    def pay():
        with file_session_factory() as db:
            detail = session_service.pay_for_session(db, user_id, models.UserRole.user, session_id)
            outcomes.append((detail.session.status, detail.payment.status))

    run_together(pay, pay)

    assert len(swaps) == 1
    assert outcomes == [(models.SessionStatus.confirmed, models.PaymentStatus.paid)] * 2
    with file_session_factory() as db:
        current = session_service.get_session(db, user_id, models.UserRole.user, session_id)
        assert current.session.status == models.SessionStatus.confirmed
        assert current.payment.status == models.PaymentStatus.paid
