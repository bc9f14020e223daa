"""Verification of Stripe webhook deliveries.

Stripe signs each delivery with the endpoint secret in the
``Stripe-Signature`` header.  ``stripe.Webhook.construct_event`` checks
that signature and its timestamp tolerance and decodes the event; this
module only maps its failures onto ValidationError and flattens the
event into what the handlers need.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import stripe

from retail.domain.exceptions import ValidationError

DEFAULT_TOLERANCE = stripe.Webhook.DEFAULT_TOLERANCE
CHECKOUT_EXPIRED = "checkout.session.expired"
PAYMENT_FAILED = "payment_intent.payment_failed"


def _lookup(obj: Any, *keys: str) -> Any:
    for key in keys:
        try:
            obj = obj[key]
        except (KeyError, TypeError, IndexError):
            return None
    return obj


@dataclass(frozen=True)
class WebhookEvent:
    """The parts of a Stripe event the order flows act on.

    ``data`` is the event's ``data.object``: a checkout session for
    checkout events, a payment intent for payment-intent events.
    """

    id: str
    type: str
    data: Any = field(default_factory=dict)

    @property
    def object_id(self) -> str | None:
        return _lookup(self.data, "id")

    @property
    def order_id(self) -> str | None:
        return _lookup(self.data, "metadata", "orderId")

    @property
    def failure_message(self) -> str | None:
        return _lookup(self.data, "last_payment_error", "message")


def construct_event(
    payload: bytes,
    header: str | None,
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
) -> WebhookEvent:
    """Verify ``header`` against ``payload`` and return the decoded event.

    Raises ValidationError when the secret is not configured, the header
    is missing, the signature or its timestamp does not verify, or the
    body is not a JSON event.
    """
    if not secret:
        raise ValidationError("Webhook secret is not configured")
    if not header:
        raise ValidationError("Missing Stripe-Signature header")

    try:
        event = stripe.Webhook.construct_event(payload, header, secret, tolerance=tolerance)
    except stripe.SignatureVerificationError as exc:
        raise ValidationError(f"Invalid Stripe signature: {exc}") from None
    except ValueError:
        raise ValidationError("Webhook body is not valid JSON") from None

    event_type = _lookup(event, "type")
    if not event_type:
        raise ValidationError("Webhook body is not a Stripe event")
    return WebhookEvent(
        id=str(_lookup(event, "id") or ""),
        type=event_type,
        data=_lookup(event, "data", "object") or {},
    )
