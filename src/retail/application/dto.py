"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the HTTP/CLI layers and the application layer
without exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from retail.domain.model.order import Order
from retail.domain.model.payment import Payment
from retail.domain.model.status_history import OrderStatusHistory
from retail.domain.model.user import Role


@dataclass(frozen=True)
class Actor:
    """Who is calling.

    A customer has only a ``user_id``; a staff member also names the
    role they are acting under; the system (webhooks, jobs) has neither.
    """

    user_id: str | None
    acting_role: Role | None = None

    @staticmethod
    def customer(user_id: str) -> Actor:
        return Actor(user_id=user_id)

    @staticmethod
    def staff(user_id: str, role: Role) -> Actor:
        return Actor(user_id=user_id, acting_role=role)

    @property
    def is_system(self) -> bool:
        return self.user_id is None

    @property
    def is_staff(self) -> bool:
        return self.user_id is not None and self.acting_role is not None


SYSTEM_ACTOR = Actor(user_id=None)


@dataclass(frozen=True)
class CartLineSpec:
    """Input: one cart line (variant, how many, optionally which colour)."""

    variant_id: str
    quantity: int
    color: str | None = None


@dataclass(frozen=True)
class OrderSummaryDTO:
    id: str
    order_number: str
    status: str
    payment_status: str
    total_amount: Decimal
    currency: str


@dataclass(frozen=True)
class PaymentDTO:
    id: str
    amount: Decimal
    currency: str
    status: str
    provider: str
    provider_reference: str


@dataclass(frozen=True)
class CheckoutStartedDTO:
    order: OrderSummaryDTO
    session_id: str
    url: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class ConfirmationResultDTO:
    order: OrderSummaryDTO
    payment: PaymentDTO | None
    already_processed: bool


@dataclass(frozen=True)
class CancellationResultDTO:
    order: OrderSummaryDTO
    already_cancelled: bool


@dataclass(frozen=True)
class OrderItemDTO:
    variant_id: str
    article_id: str | None
    product_name: str
    brand: str
    storage: str
    color: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class StatusHistoryDTO:
    from_status: str | None
    to_status: str
    changed_by: str | None
    note: str
    created_at: datetime


@dataclass(frozen=True)
class OrderDetailDTO:
    summary: OrderSummaryDTO
    user_id: str
    subtotal: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    ordered_at: datetime
    paid_at: datetime | None
    cancelled_at: datetime | None
    items: list[OrderItemDTO]
    payments: list[PaymentDTO]
    history: list[StatusHistoryDTO]


@dataclass(frozen=True)
class StockLineDTO:
    variant_id: str
    model_name: str
    brand: str
    storage: str
    available: int
    reserved: int
    sold: int


# --- Mapping -------------------------------------------------------------------


def to_summary(order: Order) -> OrderSummaryDTO:
    return OrderSummaryDTO(
        id=order.id,
        order_number=order.order_number,
        status=order.status.value,
        payment_status=order.payment_status.value,
        total_amount=order.total_amount.cents,
        currency=order.currency,
    )


def to_payment_dto(payment: Payment) -> PaymentDTO:
    return PaymentDTO(
        id=payment.id,
        amount=payment.amount.cents,
        currency=payment.amount.currency,
        status=payment.status.value,
        provider=payment.provider,
        provider_reference=payment.provider_reference,
    )


def to_history_dto(entry: OrderStatusHistory) -> StatusHistoryDTO:
    return StatusHistoryDTO(
        from_status=entry.from_status.value if entry.from_status else None,
        to_status=entry.to_status.value,
        changed_by=entry.changed_by,
        note=entry.note,
        created_at=entry.created_at,
    )
