"""End-to-end flow tests: application handlers over the SQLAlchemy unit of work."""

import pytest
from sqlalchemy import update

from retail.application.cancel_order import CancelOrderHandler
from retail.application.confirm_payment import ConfirmPaymentHandler
from retail.application.dto import Actor, CartLineSpec
from retail.application.fail_payment import FailPaymentHandler
from retail.application.show_stock import AuditStockHandler
from retail.application.start_checkout import StartCheckoutHandler
from retail.domain.clock import FixedClock
from retail.domain.exceptions import ConflictError, InsufficientStockError, StockInvariantViolation
from retail.domain.model.inventory import ArticleStatus
from retail.domain.model.order import OrderStatus, PaymentStatus
from retail.domain.service.access_control import AccessControlGate, PermissionTable
from retail.infrastructure.persistence.database import (
    create_tables,
    make_engine,
    make_session_factory,
)
from retail.infrastructure.persistence.orm import VariantRow
from retail.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from retail.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork
from tests.factories import (
    CUSTOMER_ID,
    T0,
    make_variant,
    paid_session,
    place_order,
    seed_users,
    stock_variant,
)
from tests.fakes import FakePaymentGateway


def _setup(uow):
    variant = make_variant()
    articles = stock_variant(uow, variant, ["Black", "Black", "Blue"])
    order = place_order(uow, [CartLineSpec(variant.id, 2)])
    gateway = FakePaymentGateway([paid_session("cs_sql", order.id)])
    confirm = ConfirmPaymentHandler(uow, gateway, FixedClock(T0))
    cancel = CancelOrderHandler(uow, AccessControlGate(PermissionTable.default()), FixedClock(T0))
    return variant, articles, order, confirm, cancel


def _snapshot(uow, variant_id, order_id):
    with uow:
        v = uow.variants.get_by_id(variant_id)
        o = uow.orders.get_by_id(order_id)
        return {
            "counters": (v.available_stock, v.reserved_stock, v.sold_stock),
            "status": (o.status, o.payment_status),
            "payments": [p.status for p in uow.payments.list_for_order(order_id)],
            "history": [(h.from_status, h.to_status) for h in uow.history.list_for_order(order_id)],
        }


class TestConfirmOverSql:

    def test_paid_session_settles_order(self, uow):
        variant, articles, order, confirm, _ = _setup(uow)

        confirm.handle("cs_sql", order.id)

        state = _snapshot(uow, variant.id, order.id)
        assert state["counters"] == (1, 0, 2)
        assert state["status"] == (OrderStatus.CONFIRMED, PaymentStatus.SUCCEEDED)
        assert state["payments"] == [PaymentStatus.SUCCEEDED]
        assert state["history"][-1] == (OrderStatus.PENDING, OrderStatus.CONFIRMED)
        with uow:
            assert uow.articles.get_by_id(articles[0].id).status == ArticleStatus.SOLD

    def test_second_confirmation_changes_nothing(self, uow):
        variant, _, order, confirm, _ = _setup(uow)
        confirm.handle("cs_sql", order.id)
        before = _snapshot(uow, variant.id, order.id)

        result = confirm.handle("cs_sql", order.id)

        assert result.already_processed is True
        assert _snapshot(uow, variant.id, order.id) == before

    def test_failure_rolls_back_every_table(self, uow):
        variant, articles, order, confirm, _ = _setup(uow)
        with uow:
            uow._session.execute(
                update(VariantRow).where(VariantRow.id == variant.id).values(reserved_stock=1)
            )
        before = _snapshot(uow, variant.id, order.id)

        with pytest.raises(StockInvariantViolation):
            confirm.handle("cs_sql", order.id)

        assert _snapshot(uow, variant.id, order.id) == before
        with uow:
            assert uow.articles.get_by_id(articles[0].id).status == ArticleStatus.RESERVED


class TestCancelOverSql:

    def test_cancel_releases_reservation(self, uow):
        variant, articles, order, _, cancel = _setup(uow)

        cancel.handle(order.id, Actor.customer(CUSTOMER_ID), reason="Found it cheaper")

        state = _snapshot(uow, variant.id, order.id)
        assert state["counters"] == (3, 0, 0)
        assert state["status"] == (OrderStatus.CANCELLED, PaymentStatus.CANCELLED)
        assert state["payments"] == [PaymentStatus.CANCELLED]
        assert state["history"][-1] == (OrderStatus.PENDING, OrderStatus.CANCELLED)
        [audit] = AuditStockHandler(uow).handle()
        assert audit.is_consistent

    def test_cancel_after_payment_conflicts(self, uow):
        variant, _, order, confirm, cancel = _setup(uow)
        confirm.handle("cs_sql", order.id)
        before = _snapshot(uow, variant.id, order.id)

        with pytest.raises(ConflictError):
            cancel.handle(order.id, Actor.customer(CUSTOMER_ID))

        assert _snapshot(uow, variant.id, order.id) == before

    def test_confirm_after_cancel_conflicts(self, uow):
        variant, _, order, confirm, cancel = _setup(uow)
        cancel.handle(order.id, Actor.customer(CUSTOMER_ID))

        with pytest.raises(ConflictError):
            confirm.handle("cs_sql", order.id)

        assert _snapshot(uow, variant.id, order.id)["counters"] == (3, 0, 0)


class TestCheckoutOverSql:

    def test_session_id_persisted(self, uow):
        _, _, order, _, _ = _setup(uow)
        handler = StartCheckoutHandler(uow, FakePaymentGateway(), FixedClock(T0), "https://shop.test")

        result = handler.handle(order.id, Actor.customer(CUSTOMER_ID))

        with uow:
            stored = uow.orders.get_by_id(order.id)
        assert stored.checkout_session_id == result.session_id
        assert stored.payment_provider == "stripe"
        assert (stored.status, stored.payment_status) == (OrderStatus.PENDING, PaymentStatus.PENDING)

    def test_failed_payment_releases_stock(self, uow):
        variant, _, order, _, cancel = _setup(uow)

        FailPaymentHandler(cancel).handle(order.id, "pi_sql", "Card declined")

        state = _snapshot(uow, variant.id, order.id)
        assert state["counters"] == (3, 0, 0)
        assert state["status"] == (OrderStatus.CANCELLED, PaymentStatus.FAILED)
        assert state["payments"] == [PaymentStatus.FAILED]


class TestPlacementOverSql:

    def test_shortage_rolls_back(self, uow):
        variant, _, order, _, _ = _setup(uow)

        with pytest.raises(InsufficientStockError):
            place_order(uow, [CartLineSpec(variant.id, 2)])

        with uow:
            v = uow.variants.get_by_id(variant.id)
            assert (v.available_stock, v.reserved_stock) == (1, 2)
            assert uow.articles.count_by_status(variant.id)[ArticleStatus.IN_STOCK] == 1


class TestCancelRacingConfirm:
    """Two sessions on a file database: the confirmation commits between
    the cancellation's read of the order and its first write."""

    @pytest.fixture
    def file_uow_factory(self, tmp_path):
        engine = make_engine(f"sqlite:///{tmp_path / 'orders.db'}")
        create_tables(engine)
        session_factory = make_session_factory(engine)
        yield lambda: SqlUnitOfWork(session_factory)
        engine.dispose()

    def test_losing_cancel_moves_no_stock(self, file_uow_factory, monkeypatch):
        seed_users(file_uow_factory())
        variant, _, order, _, _ = _setup(file_uow_factory())
        gateway = FakePaymentGateway([paid_session("cs_sql", order.id)])
        confirm = ConfirmPaymentHandler(file_uow_factory(), gateway, FixedClock(T0))
        cancel = CancelOrderHandler(
            file_uow_factory(), AccessControlGate(PermissionTable.default()), FixedClock(T0)
        )

        original = SqlOrderRepository.get_for_update
        raced = []

        def read_then_confirm_elsewhere(self, order_id):
            found = original(self, order_id)
            if not raced:
                raced.append(order_id)
                confirm.handle("cs_sql", order_id)
            return found

        monkeypatch.setattr(SqlOrderRepository, "get_for_update", read_then_confirm_elsewhere)

        with pytest.raises(ConflictError, match="modified by another transaction"):
            cancel.handle(order.id, Actor.customer(CUSTOMER_ID))

        state = _snapshot(file_uow_factory(), variant.id, order.id)
        assert state["counters"] == (1, 0, 2)
        assert state["status"] == (OrderStatus.CONFIRMED, PaymentStatus.SUCCEEDED)
        assert state["payments"] == [PaymentStatus.SUCCEEDED]
        [audit] = AuditStockHandler(file_uow_factory()).handle()
        assert audit.is_consistent
