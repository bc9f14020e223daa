"""Order aggregate: the core of the domain.

The Order is an aggregate root that owns its line items.  Each line is
bound to one physical Article and keeps a snapshot of the catalog data
(name, brand, storage, colour, price) as it was when the order was
placed.

Lifecycle handled here:

    PENDING/PENDING -> CONFIRMED/SUCCEEDED   (payment captured)
    PENDING/PENDING -> CANCELLED/CANCELLED   (reservation released)
    PENDING/PENDING -> CANCELLED/FAILED      (payment declined, reservation released)

All targets are terminal for this aggregate; later fulfilment states
are written by other parts of the back-office.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from retail.domain.exceptions import ConflictError, ValidationError
from retail.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity


class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass
class OrderItem:
    """One line of an order, bound to a single article once allocated.

    The descriptive fields and ``unit_price`` are captured at order time
    and never follow later catalog changes.
    """

    variant_id: str
    article_id: str | None
    product_name: str
    brand: str
    storage: str
    color: str
    quantity: Quantity
    unit_price: Money
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def total_price(self) -> Money:
        return self.unit_price * self.quantity.value


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 50


@dataclass
class Order:
    """Aggregate root for customer purchases.

    Use the ``Order.create()`` factory for new orders; it enforces all
    business rules and computes the totals.  The ``__init__`` is
    intentionally simple so the repository can reconstitute persisted
    orders without re-validating.
    """

    id: str
    order_number: str
    user_id: str
    items: list[OrderItem]
    subtotal: Money
    shipping_cost: Money
    tax_amount: Money
    total_amount: Money
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    currency: str = DEFAULT_CURRENCY
    shipping_address_id: str | None = None
    billing_address_id: str | None = None
    payment_provider: str | None = None
    payment_intent_id: str | None = None
    checkout_session_id: str | None = None
    ordered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        order_number: str,
        user_id: str,
        items: list[OrderItem],
        shipping_cost: Money,
        tax_amount: Money,
        ordered_at: datetime,
        shipping_address_id: str | None = None,
        billing_address_id: str | None = None,
    ) -> Order:
        """Create a new PENDING order, enforcing all invariants."""
        if not user_id:
            raise ValidationError("An order must belong to a customer")

        if not items:
            raise ValidationError("Order must contain at least one item")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        currency = shipping_cost.currency
        subtotal = Money.zero(currency)
        for item in items:
            subtotal = subtotal + item.total_price

        return Order(
            id=str(uuid4()),
            order_number=order_number,
            user_id=user_id,
            items=list(items),
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            tax_amount=tax_amount,
            total_amount=subtotal + shipping_cost + tax_amount,
            currency=currency,
            shipping_address_id=shipping_address_id,
            billing_address_id=billing_address_id,
            ordered_at=ordered_at,
        )

    # --- State transitions ----------------------------------------------------

    def confirm_payment(
        self,
        paid_at: datetime,
        provider: str,
        payment_intent_id: str | None,
        checkout_session_id: str,
    ) -> None:
        """Transition PENDING/PENDING -> CONFIRMED/SUCCEEDED.

        Callers detect the already-paid case *before* calling this so
        they can answer idempotently; reaching here twice is an error.
        """
        if self.is_paid:
            raise ConflictError(f"Order {self.order_number} has already been paid")
        if self.is_cancelled:
            raise ConflictError(
                f"Order {self.order_number} was cancelled and cannot be confirmed"
            )
        self.status = OrderStatus.CONFIRMED
        self.payment_status = PaymentStatus.SUCCEEDED
        self.payment_provider = provider
        self.payment_intent_id = payment_intent_id
        self.checkout_session_id = checkout_session_id
        self.paid_at = paid_at

    def ensure_payable(self) -> None:
        """Raise ConflictError unless the order is still awaiting payment."""
        if self.is_paid:
            raise ConflictError(f"Order {self.order_number} has already been paid")
        if self.is_cancelled:
            raise ConflictError(
                f"Order {self.order_number} was cancelled and cannot be paid"
            )

    def attach_checkout_session(self, session_id: str, provider: str) -> None:
        """Record the hosted checkout session opened for this order.

        Opening a second session replaces the reference to the first one.
        """
        self.ensure_payable()
        self.checkout_session_id = session_id
        self.payment_provider = provider

    def cancel(
        self,
        cancelled_at: datetime,
        payment_status: PaymentStatus = PaymentStatus.CANCELLED,
    ) -> None:
        """Transition PENDING/PENDING -> CANCELLED/CANCELLED (or CANCELLED/FAILED).

        ``payment_status`` is FAILED when the processor declined the
        payment, CANCELLED otherwise.  Reserved stock must be released in
        the same transaction (coordinated by the application handler via
        the ledger).
        """
        if payment_status not in (PaymentStatus.CANCELLED, PaymentStatus.FAILED):
            raise ValidationError(
                f"A cancelled order cannot carry payment status {payment_status.value}"
            )
        if self.is_paid:
            raise ConflictError(
                f"Order {self.order_number} has already been paid and cannot be cancelled"
            )
        if self.is_cancelled:
            raise ConflictError(f"Order {self.order_number} is already cancelled")
        self.status = OrderStatus.CANCELLED
        self.payment_status = payment_status
        self.cancelled_at = cancelled_at

    # --- Computed properties --------------------------------------------------

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.SUCCEEDED

    @property
    def is_cancelled(self) -> bool:
        return (
            self.status == OrderStatus.CANCELLED
            or self.payment_status == PaymentStatus.CANCELLED
        )

    def is_owned_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.user_id == user_id
