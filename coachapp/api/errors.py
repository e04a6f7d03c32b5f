import logging

from fastapi import HTTPException, status
from ..core import errors

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[errors.SessionServiceError], int] = {
    errors.InvalidInputError: status.HTTP_400_BAD_REQUEST,
    errors.InvalidStatusError: status.HTTP_400_BAD_REQUEST,
    errors.ForbiddenError: status.HTTP_403_FORBIDDEN,
    errors.ConflictError: status.HTTP_409_CONFLICT,
    errors.InvalidStateTransitionError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    errors.CoachNotFoundError: status.HTTP_404_NOT_FOUND,
    errors.NotFoundError: status.HTTP_404_NOT_FOUND,
}

_FIXED_DETAIL: dict[type[errors.SessionServiceError], str] = {
    errors.ForbiddenError: "Forbidden",
    errors.ConflictError: "Requested time conflicts with another session",
    errors.CoachNotFoundError: "Coach not found",
}


def to_http_error(exc: Exception) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return HTTPException(
                status_code=status_code,
                detail=_FIXED_DETAIL.get(error_type, str(exc)),
            )
    logger.exception("Session request failed", exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process session request",
    )
