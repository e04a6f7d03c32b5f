from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ...api import deps
from ...api.errors import to_http_error
from ...core.errors import SessionServiceError
from ...db.models import UserRole
from ...db.session import get_db
from ...db import schemas
from ...services import session_service

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=schemas.SessionEnvelope, status_code=201)
def book_session(
    payload: schemas.SessionCreate,
    db: Session = Depends(get_db),
    actor: deps.Actor = Depends(deps.require_roles(UserRole.user)),
):
    try:
        detail = session_service.book_session(
            db,
            actor.id,
            session_service.BookSessionInput(
                coach_id=payload.coach_id,
                scheduled_at=payload.scheduled_at,
                duration_minutes=payload.duration_minutes,
                notes=payload.notes,
            ),
        )
    except (SessionServiceError, SQLAlchemyError) as exc:
        raise to_http_error(exc) from exc
    return {"session": schemas.SessionDetail.from_result(detail)}


@router.get("", response_model=schemas.SessionList)
def list_sessions(
    status: str | None = None,
    timeframe: str | None = None,
    db: Session = Depends(get_db),
    actor: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        details = session_service.list_sessions(
            db,
            actor.id,
            actor.role,
            status=(status or "").strip() or None,
            timeframe=(timeframe or "").strip() or None,
        )
    except (SessionServiceError, SQLAlchemyError) as exc:
        raise to_http_error(exc) from exc
    return {"sessions": [schemas.SessionDetail.from_result(detail) for detail in details]}


@router.get("/{session_id}", response_model=schemas.SessionEnvelope)
def get_session(
    session_id: int,
    db: Session = Depends(get_db),
    actor: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        detail = session_service.get_session(db, actor.id, actor.role, session_id)
    except (SessionServiceError, SQLAlchemyError) as exc:
        raise to_http_error(exc) from exc
    return {"session": schemas.SessionDetail.from_result(detail)}


@router.patch("/{session_id}/status", response_model=schemas.SessionEnvelope)
def update_session_status(
    session_id: int,
    payload: schemas.SessionStatusUpdate,
    db: Session = Depends(get_db),
    actor: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        detail = session_service.update_status(
            db, actor.id, actor.role, session_id, payload.status
        )
    except (SessionServiceError, SQLAlchemyError) as exc:
        raise to_http_error(exc) from exc
    return {"session": schemas.SessionDetail.from_result(detail)}


@router.post("/{session_id}/pay", response_model=schemas.SessionEnvelope)
def pay_for_session(
    session_id: int,
    db: Session = Depends(get_db),
    actor: deps.Actor = Depends(deps.require_roles(UserRole.user)),
):
    try:
        detail = session_service.pay_for_session(db, actor.id, actor.role, session_id)
    except (SessionServiceError, SQLAlchemyError) as exc:
        raise to_http_error(exc) from exc
    return {"session": schemas.SessionDetail.from_result(detail)}
