"""Append-only audit trail of order status transitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

from retail.domain.model.order import OrderStatus


@dataclass(frozen=True)
class OrderStatusHistory:

    order_id: str
    from_status: OrderStatus | None
    to_status: OrderStatus
    changed_by: str | None
    note: str
    created_at: datetime
    id: str = field(default_factory=lambda: str(uuid4()))
