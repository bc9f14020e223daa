"""Stripe adapter for the PaymentGateway port.

Talks to the REST API directly over httpx: checkout sessions are
created with a form-encoded POST and read back by id.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

import httpx

from retail.domain.exceptions import ExternalServiceError, ValidationError
from retail.domain.gateway.payment_gateway import (
    ORDER_ID_METADATA_KEY,
    CheckoutSession,
    PaymentGateway,
)
from retail.domain.model.order import Order

logger = logging.getLogger(__name__)

PROVIDER = "stripe"
_SESSION_ID = re.compile(r"^[A-Za-z0-9_]{1,255}$")


class StripePaymentGateway(PaymentGateway):

    provider = PROVIDER

    def __init__(
        self,
        secret_key: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=api_base,
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=timeout,
            transport=transport,
        )

    def create_checkout_session(
        self,
        order: Order,
        success_url: str,
        cancel_url: str,
        expires_at: datetime,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        form = checkout_session_form(order, success_url, cancel_url, expires_at, customer_email)
        resp = self._send("POST", "/v1/checkout/sessions", order.order_number, data=form)
        if resp.is_error:
            self._raise_for(resp, f"creating checkout for {order.order_number}")
        session = parse_checkout_session(resp.json())
        logger.info("stripe opened session %s for order %s", session.id, order.order_number)
        return session

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession | None:
        if not _SESSION_ID.match(session_id):
            raise ValidationError(f"Malformed checkout session id: {session_id!r}")

        resp = self._send("GET", f"/v1/checkout/sessions/{session_id}", session_id)
        if resp.status_code == 404:
            logger.info("stripe does not know session %s", session_id)
            return None
        if resp.is_error:
            self._raise_for(resp, f"retrieving {session_id}")

        return parse_checkout_session(resp.json())

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, path: str, subject: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("stripe unreachable (%s %s): %s", method, subject, exc)
            raise ExternalServiceError(f"Payment processor unreachable: {exc}") from exc

    @staticmethod
    def _raise_for(resp: httpx.Response, action: str) -> None:
        logger.error("stripe answered %d %s: %s", resp.status_code, action, resp.text[:200])
        raise ExternalServiceError(f"Payment processor returned HTTP {resp.status_code}")


def checkout_session_form(
    order: Order,
    success_url: str,
    cancel_url: str,
    expires_at: datetime,
    customer_email: str | None = None,
) -> dict[str, str]:
    """Form fields for ``POST /v1/checkout/sessions``, in Stripe's bracket notation.

    One line item per order line at its captured unit price; shipping
    and tax become extra lines when non-zero, so the session total
    equals the order total.
    """
    form = {
        "mode": "payment",
        "payment_method_types[0]": "card",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "expires_at": str(int(expires_at.timestamp())),
        f"metadata[{ORDER_ID_METADATA_KEY}]": order.id,
        "metadata[orderNumber]": order.order_number,
        "metadata[itemCount]": str(len(order.items)),
        f"payment_intent_data[metadata][{ORDER_ID_METADATA_KEY}]": order.id,
    }
    if customer_email:
        form["customer_email"] = customer_email

    lines = [
        (
            item.product_name,
            " - ".join(part for part in (item.brand, item.storage, item.color) if part),
            item.unit_price,
            item.quantity.value,
        )
        for item in order.items
    ]
    if order.shipping_cost.amount:
        lines.append(("Shipping", "", order.shipping_cost, 1))
    if order.tax_amount.amount:
        lines.append(("Tax", "", order.tax_amount, 1))

    for i, (name, description, price, quantity) in enumerate(lines):
        prefix = f"line_items[{i}]"
        form[f"{prefix}[price_data][currency]"] = order.currency.lower()
        form[f"{prefix}[price_data][unit_amount]"] = str(price.minor_units)
        form[f"{prefix}[price_data][product_data][name]"] = name or "Product"
        if description:
            form[f"{prefix}[price_data][product_data][description]"] = description
        form[f"{prefix}[quantity]"] = str(quantity)
    return form


def parse_checkout_session(data: dict) -> CheckoutSession:
    """Build a CheckoutSession from a Stripe checkout session object."""
    payment_intent = data.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")
    customer = data.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")
    expires_at = data.get("expires_at")
    return CheckoutSession(
        id=data["id"],
        payment_status=data.get("payment_status") or "unknown",
        amount_total=data.get("amount_total"),
        currency=(data.get("currency") or "").upper() or None,
        payment_intent=payment_intent,
        customer=customer,
        metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        url=data.get("url"),
        expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc) if expires_at else None,
    )
