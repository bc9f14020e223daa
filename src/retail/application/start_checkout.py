"""Application service: Start Checkout use case.

Opens a hosted checkout at the payment processor for a PENDING order
and records the session id on the order.  The session expires after
``CHECKOUT_TTL``; its expiry notice then cancels the order and releases
the reserved phones.

The processor is called between two short transactions so no row lock
is held while waiting on it.  If the order was paid or cancelled in the
meantime, the second transaction conflicts and the orphaned session is
left to expire.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from retail.application.dto import Actor, CheckoutStartedDTO, to_summary
from retail.domain.clock import Clock
from retail.domain.exceptions import EntityNotFoundError, ForbiddenError, ValidationError
from retail.domain.gateway.payment_gateway import PaymentGateway
from retail.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

CHECKOUT_TTL = timedelta(minutes=30)
# Stripe substitutes the session id for this placeholder on redirect.
SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


class StartCheckoutHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        gateway: PaymentGateway,
        clock: Clock,
        public_url: str,
    ) -> None:
        self._uow = uow
        self._gateway = gateway
        self._clock = clock
        self._public_url = public_url.rstrip("/")

    def handle(self, order_id: str, actor: Actor) -> CheckoutStartedDTO:
        if not order_id:
            raise ValidationError("orderId is required")

        with self._uow as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            if not order.is_owned_by(actor.user_id):
                raise ForbiddenError("You can only pay for your own orders")
            order.ensure_payable()
            owner = uow.users.get_by_id(order.user_id)

        expires_at = self._clock.now() + CHECKOUT_TTL
        session = self._gateway.create_checkout_session(
            order,
            success_url=self._return_url("success", order.id),
            cancel_url=self._return_url("cancelled", order.id),
            expires_at=expires_at,
            customer_email=owner.email if owner else None,
        )

        with self._uow as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            previous_payment_status = order.payment_status
            order.attach_checkout_session(session.id, self._gateway.provider)
            uow.orders.update_status(order, expected_payment_status=previous_payment_status)

        logger.info(
            "checkout %s opened for order %s, expires %s",
            session.id,
            order.order_number,
            expires_at.isoformat(),
        )
        return CheckoutStartedDTO(
            order=to_summary(order),
            session_id=session.id,
            url=session.url,
            expires_at=session.expires_at or expires_at,
        )

    def _return_url(self, page: str, order_id: str) -> str:
        return f"{self._public_url}/{page}?session_id={SESSION_PLACEHOLDER}&order_id={order_id}"
