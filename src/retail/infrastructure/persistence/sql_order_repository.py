"""SQLAlchemy implementation of OrderRepository."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from retail.domain.exceptions import ConflictError
from retail.domain.model.order import Order, OrderItem, OrderStatus, PaymentStatus
from retail.domain.model.value_objects import Money, Quantity
from retail.domain.repository.order_repository import OrderRepository
from retail.infrastructure.persistence.orm import OrderItemRow, OrderRow


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: str) -> Order | None:
        return self._load(order_id, lock=False)

    def get_for_update(self, order_id: str) -> Order | None:
        return self._load(order_id, lock=True)

    def order_number_exists(self, order_number: str) -> bool:
        found = self._session.scalar(
            select(OrderRow.id).where(OrderRow.order_number == order_number)
        )
        return found is not None

    def add(self, order: Order) -> None:
        row = OrderRow(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            currency=order.currency,
            subtotal=order.subtotal.amount,
            shipping_cost=order.shipping_cost.amount,
            tax_amount=order.tax_amount.amount,
            total_amount=order.total_amount.amount,
            shipping_address_id=order.shipping_address_id,
            billing_address_id=order.billing_address_id,
            ordered_at=order.ordered_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            items=[
                OrderItemRow(
                    id=item.id,
                    position=position,
                    variant_id=item.variant_id,
                    article_id=item.article_id,
                    product_name=item.product_name,
                    brand=item.brand,
                    storage=item.storage,
                    color=item.color,
                    quantity=item.quantity.value,
                    unit_price=item.unit_price.amount,
                    total_price=item.total_price.amount,
                )
                for position, item in enumerate(order.items)
            ],
            **self._status_values(order),
        )
        self._session.add(row)
        self._session.flush()

    def update_status(self, order: Order, expected_payment_status: PaymentStatus) -> None:
        # Compare-and-set: a transaction that lost the race matches no row.
        result = self._session.execute(
            update(OrderRow)
            .where(
                OrderRow.id == order.id,
                OrderRow.payment_status == expected_payment_status.value,
            )
            .values(**self._status_values(order))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"Order {order.order_number} was modified by another transaction"
            )

    # --- Mapping --------------------------------------------------------------

    def _load(self, order_id: str, lock: bool) -> Order | None:
        stmt = (
            select(OrderRow)
            .where(OrderRow.id == order_id)
            .options(selectinload(OrderRow.items))
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update(of=OrderRow)
        row = self._session.scalar(stmt)
        return self._to_domain(row) if row else None

    @staticmethod
    def _status_values(order: Order) -> dict:
        return {
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "payment_provider": order.payment_provider,
            "payment_intent_id": order.payment_intent_id,
            "checkout_session_id": order.checkout_session_id,
            "paid_at": order.paid_at,
            "cancelled_at": order.cancelled_at,
        }

    @staticmethod
    def _to_domain(row: OrderRow) -> Order:
        def money(amount: Decimal) -> Money:
            return Money(Decimal(amount), row.currency)

        items = [
            OrderItem(
                id=i.id,
                variant_id=i.variant_id,
                article_id=i.article_id,
                product_name=i.product_name,
                brand=i.brand,
                storage=i.storage,
                color=i.color,
                quantity=Quantity(i.quantity),
                unit_price=money(i.unit_price),
            )
            for i in row.items
        ]
        return Order(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            items=items,
            subtotal=money(row.subtotal),
            shipping_cost=money(row.shipping_cost),
            tax_amount=money(row.tax_amount),
            total_amount=money(row.total_amount),
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            currency=row.currency,
            shipping_address_id=row.shipping_address_id,
            billing_address_id=row.billing_address_id,
            payment_provider=row.payment_provider,
            payment_intent_id=row.payment_intent_id,
            checkout_session_id=row.checkout_session_id,
            ordered_at=row.ordered_at,
            paid_at=row.paid_at,
            shipped_at=row.shipped_at,
            delivered_at=row.delivered_at,
            cancelled_at=row.cancelled_at,
        )
