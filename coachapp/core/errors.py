"""Typed failures raised by the session booking engine and its stores."""


class SessionServiceError(Exception):
    pass


class InvalidInputError(SessionServiceError):
    pass


class ForbiddenError(SessionServiceError):
    pass


class ConflictError(SessionServiceError):
    pass


class InvalidStatusError(SessionServiceError):
    pass


class InvalidStateTransitionError(SessionServiceError):
    pass


class CoachNotFoundError(SessionServiceError):
    pass


class NotFoundError(SessionServiceError):
    pass


class DuplicateRecordError(SessionServiceError):
    """A unique constraint rejected an insert."""

    def __init__(self, message: str, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


__all__ = [
    "SessionServiceError",
    "InvalidInputError",
    "ForbiddenError",
    "ConflictError",
    "InvalidStatusError",
    "InvalidStateTransitionError",
    "CoachNotFoundError",
    "NotFoundError",
    "DuplicateRecordError",
]
