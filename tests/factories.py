"""Builders for domain objects shared by the fake and SQL test suites."""

from __future__ import annotations

import hashlib
import hmac
import random
import time
from datetime import datetime, timedelta, timezone

from retail.application.dto import Actor, CartLineSpec
from retail.application.place_order import PlaceOrderHandler
from retail.domain.clock import FixedClock
from retail.domain.gateway.payment_gateway import CheckoutSession
from retail.domain.model.inventory import Article, ProductVariant
from retail.domain.model.user import AccountStatus, Role, RoleGrant, User
from retail.domain.model.value_objects import Money
from retail.domain.repository.unit_of_work import UnitOfWork

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

CUSTOMER_ID = "cust-alice"
OTHER_CUSTOMER_ID = "cust-bob"
MANAGER_ID = "staff-mgr"
CLERK_ID = "staff-clerk"


def make_variant(
    variant_id: str = "v-ip15-128",
    model_name: str = "iPhone 15",
    brand: str = "Apple",
    storage: str = "128GB",
    price: str = "999.00",
) -> ProductVariant:
    return ProductVariant(
        id=variant_id,
        model_name=model_name,
        brand=brand,
        storage=storage,
        price=Money.of(price),
    )


def stock_variant(
    uow: UnitOfWork, variant: ProductVariant, colors: list[str]
) -> list[Article]:
    """Persist the variant with one IN_STOCK article per entry in ``colors``.

    Articles are received one minute apart, in list order.
    """
    variant.available_stock = len(colors)
    articles = [
        Article(
            id=f"{variant.id}-a{i}",
            article_number=f"{variant.id.upper()}-{i:04d}",
            variant_id=variant.id,
            color=color,
            received_at=T0 - timedelta(days=30) + timedelta(minutes=i),
        )
        for i, color in enumerate(colors)
    ]
    with uow:
        uow.variants.add(variant)
        for article in articles:
            uow.articles.add(article)
    return articles


def seed_users(uow: UnitOfWork) -> None:
    with uow:
        uow.users.add(User(id=CUSTOMER_ID, email="alice@example.com"))
        uow.users.add(User(id=OTHER_CUSTOMER_ID, email="bob@example.com"))
        uow.users.add(
            User(id=MANAGER_ID, email="manager@example.com", role=Role.STORE_MANAGER)
        )
        uow.users.add(
            User(
                id=CLERK_ID,
                email="clerk@example.com",
                role=Role.SALES_REPRESENTATIVE,
                secondary_roles=[
                    RoleGrant(Role.ASSISTANT_MANAGER, expires_at=T0 + timedelta(days=7)),
                    RoleGrant(Role.OPERATIONS_DIRECTOR, expires_at=T0 - timedelta(days=1)),
                ],
            )
        )
        uow.users.add(
            User(
                id="staff-gone",
                email="gone@example.com",
                role=Role.SUPER_ADMIN,
                status=AccountStatus.SUSPENDED,
            )
        )


def place_order(
    uow: UnitOfWork,
    lines: list[CartLineSpec],
    user_id: str = CUSTOMER_ID,
    clock: FixedClock | None = None,
    shipping: str = "15.00",
):
    handler = PlaceOrderHandler(uow, clock or FixedClock(T0), rng=random.Random(7))
    return handler.handle(Actor.customer(user_id), lines, shipping_cost=shipping)


def paid_session(session_id: str, order_id: str, amount_total: int = 0) -> CheckoutSession:
    return CheckoutSession(
        id=session_id,
        payment_status="paid",
        amount_total=amount_total,
        currency="EUR",
        payment_intent=f"pi_{session_id}",
        customer="cus_test",
        metadata={"orderId": order_id},
    )


def stripe_signature_header(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """A ``Stripe-Signature`` header as Stripe computes it for ``payload``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
