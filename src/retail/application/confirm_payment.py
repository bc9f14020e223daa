"""Application service: Confirm Payment use case.

Called after the customer is redirected back from the hosted checkout
(and safe to call again for the same checkout).  The payment processor
is asked first; only a session it reports as ``paid`` settles the order.

Settlement is one transaction:

1. record a SUCCEEDED payment;
2. move the order to CONFIRMED/SUCCEEDED and stamp ``paid_at``;
3. mark every allocated article SOLD;
4. move each variant's quantity from reserved to sold;
5. append PENDING -> CONFIRMED to the status history.

The order row is re-read under lock inside that transaction.  If it is
already SUCCEEDED the handler answers ``already_processed`` without
touching anything, so duplicate redirects and webhook retries are
harmless.
"""

from __future__ import annotations

import logging

from retail.application.dto import ConfirmationResultDTO, to_payment_dto, to_summary
from retail.domain.clock import Clock
from retail.domain.exceptions import (
    EntityNotFoundError,
    PaymentNotConfirmedError,
    ValidationError,
)
from retail.domain.gateway.payment_gateway import (
    ORDER_ID_METADATA_KEY,
    CheckoutSession,
    PaymentGateway,
)
from retail.domain.model.order import OrderStatus
from retail.domain.model.payment import Payment
from retail.domain.model.status_history import OrderStatusHistory
from retail.domain.repository.unit_of_work import UnitOfWork
from retail.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class ConfirmPaymentHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        gateway: PaymentGateway,
        clock: Clock,
    ) -> None:
        self._uow = uow
        self._gateway = gateway
        self._clock = clock

    def handle(self, session_id: str, order_id: str) -> ConfirmationResultDTO:
        if not session_id or not order_id:
            raise ValidationError("sessionId and orderId are required")

        logger.info("verifying checkout session %s for order %s", session_id, order_id)

        # External verification happens before the transaction opens so no
        # row lock is held while waiting on the processor.
        session = self._gateway.retrieve_checkout_session(session_id)
        if session is None:
            raise EntityNotFoundError(f"Checkout session {session_id} not found")
        if not session.is_paid:
            raise PaymentNotConfirmedError(session.payment_status)
        self._check_session_matches_order(session, order_id)

        with self._uow as uow:
            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order {order_id} not found")

            if order.is_paid:
                logger.info("order %s already confirmed, skipping", order.order_number)
                return ConfirmationResultDTO(
                    order=to_summary(order), payment=None, already_processed=True
                )

            now = self._clock.now()
            previous_status = order.status
            previous_payment_status = order.payment_status

            payment = Payment.succeeded(
                order,
                provider=self._gateway.provider,
                provider_reference=session.payment_intent or session.id,
                at=now,
                metadata={
                    "sessionId": session.id,
                    "customerId": session.customer,
                    "amountTotal": session.amount_total,
                },
            )
            uow.payments.add(payment)

            order.confirm_payment(
                paid_at=now,
                provider=self._gateway.provider,
                payment_intent_id=session.payment_intent,
                checkout_session_id=session.id,
            )
            uow.orders.update_status(order, expected_payment_status=previous_payment_status)

            InventoryLedger(uow.variants, uow.articles).settle_order(order, sold_at=now)

            uow.history.append(
                OrderStatusHistory(
                    order_id=order.id,
                    from_status=previous_status,
                    to_status=OrderStatus.CONFIRMED,
                    changed_by=order.user_id,
                    note=f"Payment confirmed - session {session.id[:20]}...",
                    created_at=now,
                )
            )

        logger.info("order %s confirmed, payment %s", order.order_number, payment.id)
        return ConfirmationResultDTO(
            order=to_summary(order),
            payment=to_payment_dto(payment),
            already_processed=False,
        )

    @staticmethod
    def _check_session_matches_order(session: CheckoutSession, order_id: str) -> None:
        bound_order = session.metadata.get(ORDER_ID_METADATA_KEY)
        if bound_order is not None and bound_order != order_id:
            raise ValidationError(
                f"Checkout session {session.id} does not belong to order {order_id}"
            )
