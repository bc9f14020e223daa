"""Integration tests for the StartCheckout use case."""

import pytest

from retail.application.cancel_order import CancelOrderHandler
from retail.application.confirm_payment import ConfirmPaymentHandler
from retail.application.dto import Actor, CartLineSpec
from retail.application.start_checkout import CHECKOUT_TTL, StartCheckoutHandler
from retail.domain.clock import FixedClock
from retail.domain.exceptions import (
    ConflictError,
    EntityNotFoundError,
    ExternalServiceError,
    ForbiddenError,
    ValidationError,
)
from retail.domain.model.order import PaymentStatus
from retail.domain.service.access_control import AccessControlGate, PermissionTable
from tests.factories import (
    CUSTOMER_ID,
    MANAGER_ID,
    OTHER_CUSTOMER_ID,
    T0,
    make_variant,
    paid_session,
    place_order,
    seed_users,
    stock_variant,
)
from tests.fakes import FakePaymentGateway, FakeUnitOfWork

PUBLIC_URL = "https://shop.example.com/"


def _setup(gateway=None):
    uow = FakeUnitOfWork()
    seed_users(uow)
    variant = make_variant()
    stock_variant(uow, variant, ["Black", "Blue"])
    order = place_order(uow, [CartLineSpec(variant.id, 1)])
    gateway = gateway or FakePaymentGateway()
    handler = StartCheckoutHandler(uow, gateway, FixedClock(T0), PUBLIC_URL)
    return uow, handler, gateway, order


class TestStartCheckout:

    def test_session_recorded_on_order(self):
        uow, handler, gateway, order = _setup()

        result = handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        assert result.session_id == "cs_open_1"
        assert result.url.startswith("https://checkout.test/pay/")
        assert result.expires_at == T0 + CHECKOUT_TTL
        assert result.order.payment_status == "PENDING"
        stored = uow.orders.get_by_id(order.id)
        assert stored.checkout_session_id == "cs_open_1"
        assert stored.payment_provider == "stripe"
        assert stored.payment_status == PaymentStatus.PENDING

    def test_return_urls_and_customer(self):
        _, handler, gateway, order = _setup()

        handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        [created] = gateway.created
        assert created["order_id"] == order.id
        assert created["success_url"] == (
            f"https://shop.example.com/success?session_id={{CHECKOUT_SESSION_ID}}&order_id={order.id}"
        )
        assert created["cancel_url"] == (
            f"https://shop.example.com/cancelled?session_id={{CHECKOUT_SESSION_ID}}&order_id={order.id}"
        )
        assert created["customer_email"] == "alice@example.com"

    def test_session_carries_order_id(self):
        _, handler, gateway, order = _setup()

        result = handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        session = gateway.retrieve_checkout_session(result.session_id)
        assert session.metadata == {"orderId": order.id}
        assert session.amount_total == order.total_amount.minor_units

    def test_second_checkout_replaces_the_first(self):
        uow, handler, _, order = _setup()
        handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        result = handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        assert result.session_id == "cs_open_2"
        assert uow.orders.get_by_id(order.id).checkout_session_id == "cs_open_2"

    @pytest.mark.parametrize("user_id", [OTHER_CUSTOMER_ID, MANAGER_ID])
    def test_only_the_owner_can_pay(self, user_id):
        _, handler, gateway, order = _setup()

        with pytest.raises(ForbiddenError):
            handler.handle(order.id, Actor.customer(user_id))

        assert gateway.created == []

    def test_unknown_order(self):
        _, handler, _, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            handler.handle("missing", Actor.customer(CUSTOMER_ID))

    def test_order_id_required(self):
        _, handler, _, _ = _setup()
        with pytest.raises(ValidationError):
            handler.handle("", Actor.customer(CUSTOMER_ID))

    def test_cancelled_order_conflicts_before_calling_processor(self):
        uow, handler, gateway, order = _setup()
        gate = AccessControlGate(PermissionTable.default())
        CancelOrderHandler(uow, gate, FixedClock(T0)).handle(order.id, Actor.customer(CUSTOMER_ID))

        with pytest.raises(ConflictError, match="cancelled"):
            handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        assert gateway.created == []

    def test_paid_order_conflicts(self):
        uow, handler, gateway, order = _setup()
        paying = FakePaymentGateway([paid_session("cs_paid", order.id)])
        ConfirmPaymentHandler(uow, paying, FixedClock(T0)).handle("cs_paid", order.id)

        with pytest.raises(ConflictError, match="already been paid"):
            handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        assert gateway.created == []

    def test_processor_failure_leaves_order_untouched(self):
        uow, handler, _, order = _setup(FakePaymentGateway(unreachable=True))

        with pytest.raises(ExternalServiceError):
            handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        assert uow.orders.get_by_id(order.id).checkout_session_id is None
