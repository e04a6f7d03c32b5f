from .directory import CoachProfileDirectory, UserDirectory
from .payments import PaymentRepository
from .sessions import SessionListFilter, SessionRepository

__all__ = [
    "CoachProfileDirectory",
    "UserDirectory",
    "PaymentRepository",
    "SessionListFilter",
    "SessionRepository",
]
