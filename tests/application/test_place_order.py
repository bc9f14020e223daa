"""Integration tests for the PlaceOrder use case."""

import random
import re

import pytest

from retail.application.dto import SYSTEM_ACTOR, Actor, CartLineSpec
from retail.application.place_order import PlaceOrderHandler, generate_order_number
from retail.domain.clock import FixedClock
from retail.domain.exceptions import (
    AuthenticationError,
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from retail.domain.model.inventory import ArticleStatus
from retail.domain.model.order import OrderStatus, PaymentStatus
from retail.domain.model.value_objects import Money
from tests.factories import CUSTOMER_ID, T0, make_variant, place_order, stock_variant
from tests.fakes import FakeUnitOfWork


def _setup():
    uow = FakeUnitOfWork()
    iphone = make_variant()
    pixel = make_variant("v-px8-128", "Pixel 8", "Google", "128GB", "699.00")
    iphone_articles = stock_variant(uow, iphone, ["Black", "Blue", "Black"])
    pixel_articles = stock_variant(uow, pixel, ["Obsidian"])
    return uow, iphone, pixel, iphone_articles, pixel_articles


class TestPlaceOrderHappyPath:

    def test_order_is_pending_with_totals(self):
        uow, iphone, pixel, _, _ = _setup()

        dto = place_order(uow, [CartLineSpec(iphone.id, 2), CartLineSpec(pixel.id, 1)])

        assert dto.status == "PENDING"
        assert dto.payment_status == "PENDING"
        assert str(dto.total_amount) == "2712.00"  # 2 x 999 + 699 + 15 shipping
        order = uow.orders.get_by_id(dto.id)
        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.user_id == CUSTOMER_ID
        assert order.ordered_at == T0
        assert len(order.items) == 3

    def test_one_item_per_article_with_snapshot(self):
        uow, iphone, _, articles, _ = _setup()

        dto = place_order(uow, [CartLineSpec(iphone.id, 2)])

        items = uow.orders.get_by_id(dto.id).items
        assert [i.article_id for i in items] == [articles[0].id, articles[1].id]
        assert all(i.quantity.value == 1 for i in items)
        assert [i.color for i in items] == ["Black", "Blue"]
        assert items[0].product_name == "iPhone 15"
        assert items[0].unit_price == Money.of("999.00")

    def test_articles_reserved_oldest_first(self):
        uow, iphone, _, articles, _ = _setup()

        place_order(uow, [CartLineSpec(iphone.id, 1)])

        assert uow.articles.get_by_id(articles[0].id).status == ArticleStatus.RESERVED
        assert uow.articles.get_by_id(articles[1].id).status == ArticleStatus.IN_STOCK

    def test_colour_filter(self):
        uow, iphone, _, articles, _ = _setup()

        dto = place_order(uow, [CartLineSpec(iphone.id, 1, color="Blue")])

        assert uow.orders.get_by_id(dto.id).items[0].article_id == articles[1].id

    def test_counters_move_available_to_reserved(self):
        uow, iphone, _, _, _ = _setup()

        place_order(uow, [CartLineSpec(iphone.id, 2)])

        v = uow.variants.get_by_id(iphone.id)
        assert (v.available_stock, v.reserved_stock, v.sold_stock) == (1, 2, 0)

    def test_history_records_creation(self):
        uow, iphone, _, _, _ = _setup()

        dto = place_order(uow, [CartLineSpec(iphone.id, 1)])

        [entry] = uow.history.list_for_order(dto.id)
        assert entry.from_status is None
        assert entry.to_status == OrderStatus.PENDING
        assert entry.changed_by == CUSTOMER_ID

    def test_order_number_format(self):
        uow, iphone, _, _, _ = _setup()
        dto = place_order(uow, [CartLineSpec(iphone.id, 1)])
        assert re.fullmatch(r"\d{3}-\d{8}-\d{8}", dto.order_number)


class TestPlaceOrderValidation:

    def test_empty_cart_rejected(self):
        uow, _, _, _, _ = _setup()
        with pytest.raises(ValidationError, match="Cart is empty"):
            place_order(uow, [])

    def test_zero_quantity_rejected(self):
        uow, iphone, _, _, _ = _setup()
        with pytest.raises(ValidationError, match="must be positive"):
            place_order(uow, [CartLineSpec(iphone.id, 0)])

    def test_unknown_variant(self):
        uow, _, _, _, _ = _setup()
        with pytest.raises(EntityNotFoundError, match="Variant nope not found"):
            place_order(uow, [CartLineSpec("nope", 1)])

    def test_system_actor_cannot_place_orders(self):
        uow, iphone, _, _, _ = _setup()
        handler = PlaceOrderHandler(uow, FixedClock(T0))
        with pytest.raises(AuthenticationError):
            handler.handle(SYSTEM_ACTOR, [CartLineSpec(iphone.id, 1)])

    def test_negative_shipping_rejected(self):
        uow, iphone, _, _, _ = _setup()
        handler = PlaceOrderHandler(uow, FixedClock(T0))
        with pytest.raises(ValidationError, match="cannot be negative"):
            handler.handle(Actor.customer(CUSTOMER_ID), [CartLineSpec(iphone.id, 1)], shipping_cost="-5")


class TestPlaceOrderInsufficientStock:

    def test_rejected_with_requested_and_available(self):
        uow, iphone, _, _, _ = _setup()
        with pytest.raises(InsufficientStockError, match="Requested: 4, available: 3"):
            place_order(uow, [CartLineSpec(iphone.id, 4)])

    def test_colour_shortage_names_the_colour(self):
        uow, iphone, _, _, _ = _setup()
        with pytest.raises(InsufficientStockError, match="Blue"):
            place_order(uow, [CartLineSpec(iphone.id, 2, color="Blue")])

    def test_whole_cart_rolled_back(self):
        uow, iphone, pixel, iphone_articles, pixel_articles = _setup()

        with pytest.raises(InsufficientStockError):
            place_order(uow, [CartLineSpec(iphone.id, 2), CartLineSpec(pixel.id, 2)])

        assert uow.rollbacks == 1
        v = uow.variants.get_by_id(iphone.id)
        assert (v.available_stock, v.reserved_stock) == (3, 0)
        assert all(
            uow.articles.get_by_id(a.id).status == ArticleStatus.IN_STOCK
            for a in iphone_articles + pixel_articles
        )
        assert uow.history.all() == []


class TestOrderNumbers:

    def test_generator_is_seedable(self):
        assert generate_order_number(random.Random(1)) == generate_order_number(random.Random(1))

    def test_collision_is_retried(self):
        uow, iphone, _, _, _ = _setup()
        first = place_order(uow, [CartLineSpec(iphone.id, 1)])
        # Same seed: the first candidate collides with the existing order.
        second = place_order(uow, [CartLineSpec(iphone.id, 1)])
        assert first.order_number != second.order_number
