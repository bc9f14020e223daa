"""Application service: Place Order use case.

Turns a customer's cart into a PENDING order inside one transaction:

1. For every cart line, claim the oldest IN_STOCK articles of the variant
   (optionally of one colour) and mark each RESERVED.
2. Create one order item per article, snapshotting catalog data and the
   variant's current price.
3. Move the line quantity from available to reserved on the variant.
4. Create the order with a fresh order number and record PENDING in the
   status history.

If any line cannot be served the whole transaction rolls back and no
article or counter is touched.
"""

from __future__ import annotations

import logging
import random
from decimal import Decimal

from retail.application.dto import Actor, CartLineSpec, OrderSummaryDTO, to_summary
from retail.domain.clock import Clock
from retail.domain.exceptions import (
    AuthenticationError,
    ConflictError,
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from retail.domain.model.order import Order, OrderItem, OrderStatus
from retail.domain.model.status_history import OrderStatusHistory
from retail.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from retail.domain.repository.order_repository import OrderRepository
from retail.domain.repository.unit_of_work import UnitOfWork
from retail.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 10


def generate_order_number(rng: random.Random) -> str:
    """Random number shaped like ``123-12345678-12345678``."""
    return (
        f"{rng.randint(100, 999)}-"
        f"{rng.randint(10_000_000, 99_999_999)}-"
        f"{rng.randint(10_000_000, 99_999_999)}"
    )


class PlaceOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        clock: Clock,
        currency: str = DEFAULT_CURRENCY,
        rng: random.Random | None = None,
    ) -> None:
        self._uow = uow
        self._clock = clock
        self._currency = currency
        self._rng = rng or random.SystemRandom()

    def handle(
        self,
        actor: Actor,
        lines: list[CartLineSpec],
        shipping_cost: str | Decimal = "0",
        tax_amount: str | Decimal = "0",
        shipping_address_id: str | None = None,
        billing_address_id: str | None = None,
    ) -> OrderSummaryDTO:
        if actor.user_id is None:
            raise AuthenticationError("Only a signed-in customer can place an order")
        if not lines:
            raise ValidationError("Cart is empty")

        shipping = Money.of(shipping_cost, self._currency)
        tax = Money.of(tax_amount, self._currency)
        quantities = [Quantity(line.quantity) for line in lines]

        with self._uow as uow:
            ledger = InventoryLedger(uow.variants, uow.articles)
            now = self._clock.now()
            items: list[OrderItem] = []

            for line, quantity in zip(lines, quantities):
                items.extend(self._allocate(uow, ledger, line, quantity))

            order = Order.create(
                order_number=self._next_order_number(uow.orders),
                user_id=actor.user_id,
                items=items,
                shipping_cost=shipping,
                tax_amount=tax,
                ordered_at=now,
                shipping_address_id=shipping_address_id,
                billing_address_id=billing_address_id,
            )
            uow.orders.add(order)
            uow.history.append(
                OrderStatusHistory(
                    order_id=order.id,
                    from_status=None,
                    to_status=OrderStatus.PENDING,
                    changed_by=actor.user_id,
                    note="Order created",
                    created_at=now,
                )
            )

        logger.info(
            "order %s placed by %s: %d article(s), total %s",
            order.order_number,
            actor.user_id,
            len(order.items),
            order.total_amount,
        )
        return to_summary(order)

    def _allocate(
        self,
        uow: UnitOfWork,
        ledger: InventoryLedger,
        line: CartLineSpec,
        quantity: Quantity,
    ) -> list[OrderItem]:
        variant = uow.variants.get_by_id(line.variant_id)
        if variant is None:
            raise EntityNotFoundError(f"Variant {line.variant_id} not found")
        if variant.price.currency != self._currency:
            raise ValidationError(
                f"{variant.model_name} is priced in {variant.price.currency}, "
                f"not {self._currency}"
            )

        articles = uow.articles.find_in_stock(variant.id, quantity.value, line.color)
        if len(articles) < quantity.value:
            details = " - ".join(
                part for part in (variant.model_name, variant.storage, line.color) if part
            )
            raise InsufficientStockError(
                f"Insufficient stock for {details}. "
                f"Requested: {quantity.value}, available: {len(articles)}"
            )

        items: list[OrderItem] = []
        for article in articles:
            ledger.mark_reserved(article.id)
            items.append(
                OrderItem(
                    variant_id=variant.id,
                    article_id=article.id,
                    product_name=variant.model_name,
                    brand=variant.brand,
                    storage=variant.storage,
                    color=article.color or "N/A",
                    quantity=Quantity(1),
                    unit_price=variant.price,
                )
            )

        ledger.reserve_available(variant.id, quantity.value)
        return items

    def _next_order_number(self, orders: OrderRepository) -> str:
        for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
            candidate = generate_order_number(self._rng)
            if not orders.order_number_exists(candidate):
                return candidate
        raise ConflictError("Could not allocate a unique order number")
