"""SQLAlchemy implementations of the insert-only Payment and status history stores."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from retail.domain.model.order import OrderStatus, PaymentStatus
from retail.domain.model.payment import Payment
from retail.domain.model.status_history import OrderStatusHistory
from retail.domain.model.value_objects import Money
from retail.domain.repository.payment_repository import PaymentRepository
from retail.domain.repository.status_history_repository import StatusHistoryRepository
from retail.infrastructure.persistence.orm import PaymentRow, StatusHistoryRow


class SqlPaymentRepository(PaymentRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, payment: Payment) -> None:
        self._session.add(
            PaymentRow(
                id=payment.id,
                order_id=payment.order_id,
                amount=payment.amount.amount,
                currency=payment.amount.currency,
                status=payment.status.value,
                provider=payment.provider,
                provider_reference=payment.provider_reference,
                method=payment.method,
                details=dict(payment.metadata),
                created_at=payment.created_at,
                processed_at=payment.processed_at,
                failed_at=payment.failed_at,
            )
        )
        self._session.flush()

    def list_for_order(self, order_id: str) -> list[Payment]:
        rows = self._session.scalars(
            select(PaymentRow).where(PaymentRow.order_id == order_id).order_by(PaymentRow.seq)
        )
        return [
            Payment(
                id=row.id,
                order_id=row.order_id,
                amount=Money(Decimal(row.amount), row.currency),
                status=PaymentStatus(row.status),
                provider=row.provider,
                provider_reference=row.provider_reference,
                created_at=row.created_at,
                method=row.method,
                metadata=dict(row.details or {}),
                processed_at=row.processed_at,
                failed_at=row.failed_at,
            )
            for row in rows
        ]


class SqlStatusHistoryRepository(StatusHistoryRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, entry: OrderStatusHistory) -> None:
        self._session.add(
            StatusHistoryRow(
                id=entry.id,
                order_id=entry.order_id,
                from_status=entry.from_status.value if entry.from_status else None,
                to_status=entry.to_status.value,
                changed_by=entry.changed_by,
                note=entry.note,
                created_at=entry.created_at,
            )
        )
        self._session.flush()

    def list_for_order(self, order_id: str) -> list[OrderStatusHistory]:
        rows = self._session.scalars(
            select(StatusHistoryRow)
            .where(StatusHistoryRow.order_id == order_id)
            .order_by(StatusHistoryRow.seq)
        )
        return [
            OrderStatusHistory(
                id=row.id,
                order_id=row.order_id,
                from_status=OrderStatus(row.from_status) if row.from_status else None,
                to_status=OrderStatus(row.to_status),
                changed_by=row.changed_by,
                note=row.note,
                created_at=row.created_at,
            )
            for row in rows
        ]
