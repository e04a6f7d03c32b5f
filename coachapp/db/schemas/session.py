from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, field_validator

from ...core.clock import as_utc
from ..models.coaching_session import SessionStatus
from .payment import Payment

if TYPE_CHECKING:
    from ...services.session_service import SessionDetail as SessionDetailResult


class SessionCreate(BaseModel):
    coach_id: int
    scheduled_at: datetime
    duration_minutes: int
    notes: str | None = None

    @field_validator("scheduled_at")
    @classmethod
    def require_offset(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("scheduled_at must be a valid RFC3339 timestamp")
        return value

    @field_validator("duration_minutes")
    @classmethod
    def require_positive_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("duration_minutes must be greater than 0")
        return value

    @field_validator("notes")
    @classmethod
    def reject_blank_notes(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("notes must not be empty")
        return value


class SessionStatusUpdate(BaseModel):
    status: str


class Session(BaseModel):
    id: int
    user_id: int
    coach_id: int
    scheduled_at: datetime
    duration_minutes: int
    status: SessionStatus
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("scheduled_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    class Config:
        from_attributes = True


class SessionDetail(Session):
    payment: Payment | None = None

    @classmethod
    def from_result(cls, detail: "SessionDetailResult") -> "SessionDetail":
        session = Session.model_validate(detail.session)
        payment = Payment.model_validate(detail.payment) if detail.payment else None
        return cls(**session.model_dump(), payment=payment)


class SessionEnvelope(BaseModel):
    session: SessionDetail


class SessionList(BaseModel):
    sessions: list[SessionDetail]


class Availability(BaseModel):
    coach_id: int
    scheduled_at: datetime
    duration_minutes: int
    available: bool
