"""Application service: Fail Payment use case.

The payment processor reports that the payment for an order was
declined.  The order is cancelled on behalf of the system with payment
status FAILED, so its reserved phones go back on sale.

Like an expiry notice, a failure notice never undoes a payment: a paid,
already-cancelled or unknown order is logged and left alone.  A later
successful confirmation for a failed order conflicts and is left for
manual reconciliation.
"""

from __future__ import annotations

import logging

from retail.application.cancel_order import CancelOrderHandler
from retail.application.dto import SYSTEM_ACTOR, CancellationResultDTO
from retail.domain.exceptions import ConflictError, EntityNotFoundError
from retail.domain.model.order import PaymentStatus

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Payment failed"


class FailPaymentHandler:

    def __init__(self, cancel_handler: CancelOrderHandler) -> None:
        self._cancel_handler = cancel_handler

    def handle(
        self,
        order_id: str,
        payment_intent_id: str | None,
        failure_message: str | None = None,
    ) -> CancellationResultDTO | None:
        reason = f"{DEFAULT_FAILURE_REASON}: {failure_message}" if failure_message else DEFAULT_FAILURE_REASON
        try:
            return self._cancel_handler.handle(
                order_id,
                SYSTEM_ACTOR,
                reason=reason,
                session_id=payment_intent_id,
                outcome=PaymentStatus.FAILED,
            )
        except ConflictError as exc:
            logger.info("ignoring failure of payment %s: %s", payment_intent_id, exc)
        except EntityNotFoundError:
            logger.warning(
                "ignoring failure of payment %s: order %s not found", payment_intent_id, order_id
            )
        return None
