from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import exists, select, update
from sqlalchemy.orm import Session

from ..core.clock import as_utc, utc_now
from ..core.errors import NotFoundError
from ..db import models
from ..db.models import SessionStatus, UserRole
from .locks import session_end


@dataclass(frozen=True)
class SessionListFilter:
    actor_id: int
    role: UserRole
    status: SessionStatus | None = None
    timeframe: str | None = None


class SessionRepository:

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: int,
        coach_id: int,
        scheduled_at: datetime,
        duration_minutes: int,
        notes: str | None = None,
    ) -> models.CoachingSession:
        starts_at = as_utc(scheduled_at)
        session = models.CoachingSession(
            user_id=user_id,
            coach_id=coach_id,
            scheduled_at=starts_at,
            duration_minutes=duration_minutes,
            ends_at=session_end(starts_at, duration_minutes),
            status=SessionStatus.pending,
            notes=notes,
        )
        self.db.add(session)
        self.db.flush()
        return session

    def get_by_id(self, session_id: int) -> models.CoachingSession:
        session = self.db.get(models.CoachingSession, session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    def get_by_id_for_update(self, session_id: int) -> models.CoachingSession:
        session = self.db.execute(
            select(models.CoachingSession)
            .where(models.CoachingSession.id == session_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if session is None:
            raise NotFoundError("Session not found")
        return session

    def list(
        self, filter: SessionListFilter, now: datetime | None = None
    ) -> list[models.CoachingSession]:
        actor_column = (
            models.CoachingSession.coach_id
            if filter.role == UserRole.coach
            else models.CoachingSession.user_id
        )
        query = select(models.CoachingSession).where(actor_column == filter.actor_id)
        if filter.status is not None:
            query = query.where(models.CoachingSession.status == filter.status)
        now = as_utc(now or utc_now())
        if filter.timeframe == "upcoming":
            query = query.where(models.CoachingSession.ends_at > now)
        elif filter.timeframe == "past":
            query = query.where(models.CoachingSession.ends_at <= now)
        query = query.order_by(
            models.CoachingSession.scheduled_at.asc(),
            models.CoachingSession.id.asc(),
        )
        return list(self.db.execute(query).scalars().all())

    def update_status(
        self, session_id: int, status: SessionStatus
    ) -> models.CoachingSession:
        session = self.get_by_id(session_id)
        session.status = status
        session.updated_at = utc_now()
        self.db.flush()
        return session

    def update_status_if_current(
        self,
        session_id: int,
        current_status: SessionStatus,
        next_status: SessionStatus,
    ) -> models.CoachingSession | None:
        """Move ``session_id`` to ``next_status`` only if it is still ``current_status``.

        Returns ``None`` when no row matched, which callers treat as a lost race.
        """
        result = self.db.execute(
            update(models.CoachingSession)
            .where(
                models.CoachingSession.id == session_id,
                models.CoachingSession.status == current_status,
            )
            .values(status=next_status, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.db.get(models.CoachingSession, session_id, populate_existing=True)

    def has_conflict(
        self,
        coach_id: int,
        requested_at: datetime,
        duration_minutes: int,
        excluding_session_id: int | None = None,
    ) -> bool:
        starts_at = as_utc(requested_at)
        ends_at = session_end(starts_at, duration_minutes)
        overlapping = exists().where(
            models.CoachingSession.coach_id == coach_id,
            models.CoachingSession.status != SessionStatus.cancelled,
            models.CoachingSession.scheduled_at < ends_at,
            models.CoachingSession.ends_at > starts_at,
        )
        if excluding_session_id is not None:
            overlapping = overlapping.where(models.CoachingSession.id != excluding_session_id)
        return bool(self.db.scalar(select(overlapping)))
