"""Abstract gateway to the external payment processor.

Two calls are modelled: opening a hosted checkout for an order, and
reading a checkout back to reconcile it.  The processor's own ledger
stays outside this system.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from retail.domain.model.order import Order

PAID = "paid"
ORDER_ID_METADATA_KEY = "orderId"


@dataclass(frozen=True)
class CheckoutSession:
    """The processor's view of one hosted checkout."""

    id: str
    payment_status: str
    amount_total: int | None = None  # minor units (cents)
    currency: str | None = None
    payment_intent: str | None = None
    customer: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    url: str | None = None
    expires_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID


class PaymentGateway(ABC):

    provider: str

    @abstractmethod
    def create_checkout_session(
        self,
        order: Order,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        """Open a hosted checkout charging the order's total.

        The session carries the order id under ``ORDER_ID_METADATA_KEY``
        so later notices can be traced back to the order.  Raises
        ExternalServiceError when the processor refuses or cannot be
        reached.
        """

    @abstractmethod
    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession | None:
        """Return the session, or None if the processor does not know it.

        Raises ExternalServiceError when the processor cannot be reached
        or answers with an unexpected error.
        """
