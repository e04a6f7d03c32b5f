from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import DuplicateRecordError, NotFoundError
from ..db import models
from ..db.models import PaymentStatus
from .locks import is_unique_violation, violated_constraint


class PaymentRepository:

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        session_id: int,
        user_id: int,
        coach_id: int,
        amount: Decimal,
        status: PaymentStatus = PaymentStatus.placeholder,
    ) -> models.Payment:
        payment = models.Payment(
            session_id=session_id,
            user_id=user_id,
            coach_id=coach_id,
            amount=amount,
            status=status,
        )
        # Savepoint so a rejected insert leaves the caller's transaction usable
        try:
            with self.db.begin_nested():
                self.db.add(payment)
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateRecordError(
                    "Payment already exists for session",
                    constraint=violated_constraint(exc) or "uq_payment_session",
                ) from exc
            raise
        return payment

    def _latest_for_session(self, session_id: int):
        return (
            select(models.Payment)
            .where(models.Payment.session_id == session_id)
            .order_by(models.Payment.id.desc())
            .limit(1)
        )

    def get_by_session_id(self, session_id: int) -> models.Payment:
        payment = self.db.execute(self._latest_for_session(session_id)).scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    def get_by_session_id_for_update(self, session_id: int) -> models.Payment:
        payment = self.db.execute(
            self._latest_for_session(session_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    def list_by_session_ids(self, session_ids: Iterable[int]) -> dict[int, models.Payment]:
        ids = list(session_ids)
        if not ids:
            return {}
        payments = self.db.execute(
            select(models.Payment)
            .where(models.Payment.session_id.in_(ids))
            .order_by(models.Payment.session_id, models.Payment.id.asc())
        ).scalars()
        # Ascending ids, so the most recent payment per session is written last
        return {payment.session_id: payment for payment in payments}

    def update_status(self, payment_id: int, status: PaymentStatus) -> models.Payment:
        payment = self.db.get(models.Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")
        payment.status = status
        self.db.flush()
        return payment

    def update_status_if_current(
        self,
        payment_id: int,
        current_status: PaymentStatus,
        next_status: PaymentStatus,
    ) -> models.Payment | None:
        result = self.db.execute(
            update(models.Payment)
            .where(
                models.Payment.id == payment_id,
                models.Payment.status == current_status,
            )
            .values(status=next_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.db.get(models.Payment, payment_id, populate_existing=True)
