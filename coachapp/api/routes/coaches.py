from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ...api import deps
from ...api.errors import to_http_error
from ...core.errors import SessionServiceError
from ...db.session import get_db
from ...db import schemas
from ...services import session_service

router = APIRouter(prefix="/coaches", tags=["coaches"])


@router.get("/{coach_id}/availability", response_model=schemas.Availability)
def coach_availability(
    coach_id: int,
    scheduled_at: datetime,
    duration_minutes: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    _: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        available = session_service.check_availability(
            db, coach_id, scheduled_at, duration_minutes
        )
    except (SessionServiceError, SQLAlchemyError) as exc:
        raise to_http_error(exc) from exc
    return {
        "coach_id": coach_id,
        "scheduled_at": scheduled_at,
        "duration_minutes": duration_minutes,
        "available": available,
    }
