"""Application service: Show Order use case (query)."""

from __future__ import annotations

from retail.application.dto import (
    Actor,
    OrderDetailDTO,
    OrderItemDTO,
    to_history_dto,
    to_payment_dto,
    to_summary,
)
from retail.domain.clock import Clock
from retail.domain.exceptions import AuthenticationError, EntityNotFoundError, ForbiddenError
from retail.domain.model.order import Order
from retail.domain.repository.unit_of_work import UnitOfWork
from retail.domain.service.access_control import AccessControlGate

VIEW_PERMISSION = "orders.view_all"


class ShowOrderHandler:

    def __init__(self, uow: UnitOfWork, gate: AccessControlGate, clock: Clock) -> None:
        self._uow = uow
        self._gate = gate
        self._clock = clock

    def handle(self, order_id: str, actor: Actor) -> OrderDetailDTO:
        with self._uow as uow:
            if actor.is_staff:
                user = uow.users.get_by_id(actor.user_id)
                if user is None:
                    raise AuthenticationError("Unknown user")
                self._gate.authorize(user, actor.acting_role, VIEW_PERMISSION, self._clock.now())

            order = uow.orders.get_by_id(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            if not actor.is_system and not actor.is_staff and not order.is_owned_by(actor.user_id):
                raise ForbiddenError("You can only view your own orders")

            payments = uow.payments.list_for_order(order.id)
            history = uow.history.list_for_order(order.id)

        return OrderDetailDTO(
            summary=to_summary(order),
            user_id=order.user_id,
            subtotal=order.subtotal.cents,
            shipping_cost=order.shipping_cost.cents,
            tax_amount=order.tax_amount.cents,
            ordered_at=order.ordered_at,
            paid_at=order.paid_at,
            cancelled_at=order.cancelled_at,
            items=self._items(order),
            payments=[to_payment_dto(p) for p in payments],
            history=[to_history_dto(h) for h in history],
        )

    @staticmethod
    def _items(order: Order) -> list[OrderItemDTO]:
        return [
            OrderItemDTO(
                variant_id=item.variant_id,
                article_id=item.article_id,
                product_name=item.product_name,
                brand=item.brand,
                storage=item.storage,
                color=item.color,
                quantity=item.quantity.value,
                unit_price=item.unit_price.cents,
                total_price=item.total_price.cents,
            )
            for item in order.items
        ]
