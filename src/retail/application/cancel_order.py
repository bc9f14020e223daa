"""Application service: Cancel Order use case.

Three callers share this one transaction script:

- a customer cancelling their own unpaid order;
- a staff member acting under a role that grants ``orders.cancel``;
- the system itself, when the hosted checkout expires or the processor
  reports the payment as failed.

Inside one transaction the order moves to CANCELLED (its payment status
to CANCELLED, or FAILED for a declined payment), the reserved articles
go back IN_STOCK, each variant's reserved quantity becomes available
again, a payment row records the reason, and the transition is appended
to the status history.  The order row is written first, so a
cancellation that lost the race to a confirmation fails before any
stock moves.

A paid order cannot be cancelled here (ConflictError).  Cancelling an
order that is already cancelled succeeds without touching anything.
"""

from __future__ import annotations

import logging

from retail.application.dto import Actor, CancellationResultDTO, to_summary
from retail.domain.clock import Clock
from retail.domain.exceptions import (
    AuthenticationError,
    ConflictError,
    EntityNotFoundError,
    ForbiddenError,
    ValidationError,
)
from retail.domain.model.order import OrderStatus, PaymentStatus
from retail.domain.model.payment import Payment
from retail.domain.model.status_history import OrderStatusHistory
from retail.domain.repository.unit_of_work import UnitOfWork
from retail.domain.service.access_control import AccessControlGate
from retail.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

CANCEL_PERMISSION = "orders.cancel"
MANUAL_REFERENCE = "manual-cancellation"
DEFAULT_REASON = "Cancelled by customer"
SYSTEM_NAME = "system"


class CancelOrderHandler:

    def __init__(
        self,
        uow: UnitOfWork,
        gate: AccessControlGate,
        clock: Clock,
        provider: str = "stripe",
    ) -> None:
        self._uow = uow
        self._gate = gate
        self._clock = clock
        self._provider = provider

    def handle(
        self,
        order_id: str,
        actor: Actor,
        reason: str | None = None,
        session_id: str | None = None,
        outcome: PaymentStatus = PaymentStatus.CANCELLED,
        current_session_only: bool = False,
    ) -> CancellationResultDTO:
        """Cancel the order and release its stock.

        ``outcome`` is the payment status recorded on the order and on the
        new payment row: CANCELLED, or FAILED when the processor reported
        the payment as failed.  ``session_id`` is the processor reference
        (checkout session or payment intent) that triggered the cancellation.
        With ``current_session_only`` an order whose stored checkout session
        differs from ``session_id`` is not cancelled (ConflictError).
        """
        if not order_id:
            raise ValidationError("orderId is required")
        if outcome not in (PaymentStatus.CANCELLED, PaymentStatus.FAILED):
            raise ValidationError(f"Cannot cancel with payment outcome {outcome.value}")

        with self._uow as uow:
            now = self._clock.now()

            # Staff permission is settled before the order is even read.
            if actor.is_staff:
                user = uow.users.get_by_id(actor.user_id)
                if user is None:
                    raise AuthenticationError("Unknown user")
                self._gate.authorize(user, actor.acting_role, CANCEL_PERMISSION, now)

            order = uow.orders.get_for_update(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order {order_id} not found")

            if not actor.is_system and not actor.is_staff and not order.is_owned_by(actor.user_id):
                raise ForbiddenError("You can only cancel your own orders")

            if order.is_cancelled:
                logger.info("order %s already cancelled, skipping", order.order_number)
                return CancellationResultDTO(order=to_summary(order), already_cancelled=True)

            if order.is_paid:
                raise ConflictError(
                    f"Order {order.order_number} has already been paid and cannot be cancelled"
                )

            if (
                current_session_only
                and order.checkout_session_id
                and order.checkout_session_id != session_id
            ):
                raise ConflictError(
                    f"Session {session_id} is no longer the checkout of order {order.order_number}"
                )

            previous_status = order.status
            previous_payment_status = order.payment_status
            cancelled_by = actor.user_id or SYSTEM_NAME
            reason = reason or DEFAULT_REASON

            # The status write goes first: a flow that lost the race to a
            # confirmation stops here with ConflictError, before any stock moves.
            order.cancel(cancelled_at=now, payment_status=outcome)
            uow.orders.update_status(order, expected_payment_status=previous_payment_status)

            InventoryLedger(uow.variants, uow.articles).release_order(order)

            record = Payment.failed if outcome == PaymentStatus.FAILED else Payment.cancelled
            uow.payments.add(
                record(
                    order,
                    provider=self._provider,
                    provider_reference=session_id or MANUAL_REFERENCE,
                    at=now,
                    metadata={
                        "reason": reason,
                        "sessionId": session_id,
                        "cancelledAt": now.isoformat(),
                        "cancelledBy": cancelled_by,
                    },
                )
            )
            uow.history.append(
                OrderStatusHistory(
                    order_id=order.id,
                    from_status=previous_status,
                    to_status=OrderStatus.CANCELLED,
                    changed_by=actor.user_id,
                    note=f"Order cancelled: {reason}",
                    created_at=now,
                )
            )

        logger.info(
            "order %s cancelled by %s (%s): %s",
            order.order_number,
            cancelled_by,
            outcome.value,
            reason,
        )
        return CancellationResultDTO(order=to_summary(order), already_cancelled=False)
