"""Application service: Expire Checkout use case.

The payment processor tells us a hosted checkout expired without
payment.  The order it was opened for is cancelled on behalf of the
system so its reserved phones go back on sale.

A late expiry notice must never undo a payment: if the order was paid
in the meantime, or no longer exists, the notice is logged and dropped.
So is the expiry of a session that a newer checkout has replaced.
"""

from __future__ import annotations

import logging

from retail.application.cancel_order import CancelOrderHandler
from retail.application.dto import SYSTEM_ACTOR, CancellationResultDTO
from retail.domain.exceptions import ConflictError, EntityNotFoundError

logger = logging.getLogger(__name__)

EXPIRY_REASON = "checkout session expired"


class ExpireCheckoutHandler:

    def __init__(self, cancel_handler: CancelOrderHandler) -> None:
        self._cancel_handler = cancel_handler

    def handle(self, order_id: str, session_id: str | None) -> CancellationResultDTO | None:
        try:
            return self._cancel_handler.handle(
                order_id,
                SYSTEM_ACTOR,
                reason=EXPIRY_REASON,
                session_id=session_id,
                current_session_only=True,
            )
        except ConflictError as exc:
            logger.info("ignoring expiry of session %s: %s", session_id, exc)
        except EntityNotFoundError:
            logger.warning(
                "ignoring expiry of session %s: order %s not found", session_id, order_id
            )
        return None
