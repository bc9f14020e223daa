"""Request and response bodies of the HTTP API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ------------------------------------------------------------------


class CartLineIn(CamelModel):
    variant_id: str
    quantity: int
    color: str | None = None


class PlaceOrderRequest(CamelModel):
    items: list[CartLineIn] = Field(min_length=1)
    shipping_cost: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    shipping_address_id: str | None = None
    billing_address_id: str | None = None


class StartCheckoutRequest(CamelModel):
    order_id: str


class VerifySessionRequest(CamelModel):
    session_id: str
    order_id: str


class CancelOrderRequest(CamelModel):
    order_id: str
    session_id: str | None = None
    reason: str | None = None


class AdminCancelRequest(CamelModel):
    reason: str | None = None


# --- Responses -----------------------------------------------------------------


class OrderOut(CamelModel):
    id: str
    order_number: str
    status: str
    payment_status: str
    total_amount: Decimal
    currency: str


class PaymentOut(CamelModel):
    id: str
    amount: Decimal
    currency: str
    status: str
    provider: str
    provider_reference: str


class OrderItemOut(CamelModel):
    variant_id: str
    article_id: str | None
    product_name: str
    brand: str
    storage: str
    color: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class StatusHistoryOut(CamelModel):
    from_status: str | None
    to_status: str
    changed_by: str | None
    note: str
    created_at: datetime


class OrderDetailOut(OrderOut):
    user_id: str
    subtotal: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    ordered_at: datetime
    paid_at: datetime | None
    cancelled_at: datetime | None
    items: list[OrderItemOut]
    payments: list[PaymentOut]
    history: list[StatusHistoryOut]


class OrderResponse(CamelModel):
    success: bool = True
    order: OrderOut


class CheckoutResponse(CamelModel):
    success: bool = True
    session_id: str
    url: str | None
    expires_at: datetime | None
    order: OrderOut


class ConfirmationResponse(CamelModel):
    success: bool = True
    order: OrderOut
    payment: PaymentOut | None
    already_processed: bool


class CancellationResponse(CamelModel):
    success: bool = True
    order: OrderOut
    already_cancelled: bool


class OrderDetailResponse(CamelModel):
    success: bool = True
    order: OrderDetailOut


class WebhookResponse(CamelModel):
    received: bool = True
    handled: bool


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    payment_status: str | None = None
