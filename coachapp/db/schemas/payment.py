from datetime import datetime
from pydantic import BaseModel, field_validator

from ...core.clock import as_utc
from ..models.payment import PaymentStatus


class Payment(BaseModel):
    id: int
    session_id: int
    user_id: int
    coach_id: int
    amount: float
    status: PaymentStatus
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    class Config:
        from_attributes = True
