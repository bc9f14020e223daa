"""Payment record: one settlement attempt against an order.

Payments are never updated after creation.  A cancellation writes a new
CANCELLED (or FAILED) payment instead of touching an earlier one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from retail.domain.model.order import Order, PaymentStatus
from retail.domain.model.value_objects import Money

CARD = "CARD"


@dataclass(frozen=True)
class Payment:

    id: str
    order_id: str
    amount: Money
    status: PaymentStatus
    provider: str
    provider_reference: str
    created_at: datetime
    method: str = CARD
    metadata: dict[str, Any] = field(default_factory=dict)
    processed_at: datetime | None = None
    failed_at: datetime | None = None

    @staticmethod
    def succeeded(
        order: Order,
        provider: str,
        provider_reference: str,
        at: datetime,
        metadata: dict[str, Any],
    ) -> Payment:
        return Payment(
            id=str(uuid4()),
            order_id=order.id,
            amount=order.total_amount,
            status=PaymentStatus.SUCCEEDED,
            provider=provider,
            provider_reference=provider_reference,
            created_at=at,
            metadata=metadata,
            processed_at=at,
        )

    @staticmethod
    def cancelled(
        order: Order,
        provider: str,
        provider_reference: str,
        at: datetime,
        metadata: dict[str, Any],
    ) -> Payment:
        return Payment(
            id=str(uuid4()),
            order_id=order.id,
            amount=order.total_amount,
            status=PaymentStatus.CANCELLED,
            provider=provider,
            provider_reference=provider_reference,
            created_at=at,
            metadata=metadata,
            failed_at=at,
        )

    @staticmethod
    def failed(
        order: Order,
        provider: str,
        provider_reference: str,
        at: datetime,
        metadata: dict[str, Any],
    ) -> Payment:
        return Payment(
            id=str(uuid4()),
            order_id=order.id,
            amount=order.total_amount,
            status=PaymentStatus.FAILED,
            provider=provider,
            provider_reference=provider_reference,
            created_at=at,
            metadata=metadata,
            failed_at=at,
        )
