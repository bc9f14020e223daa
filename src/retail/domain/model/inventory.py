"""Inventory aggregates: sellable variants and the physical articles behind them.

A ProductVariant is the SKU a customer buys (e.g. one phone model with a
given storage size).  It carries three ledger counters: available,
reserved and sold.  Each physical phone is an Article with its own
status; the counters on the variant must always match the number of
its articles in each status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from retail.domain.exceptions import StockInvariantViolation, ValidationError
from retail.domain.model.value_objects import Money


class ArticleStatus(Enum):
    IN_STOCK = "IN_STOCK"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    DEFECTIVE = "DEFECTIVE"
    RETURNED = "RETURNED"


@dataclass
class Article:
    """One physically trackable unit (a single phone with its own number).

    Its status only changes through the compare-and-set
    ``ArticleRepository.transition``, driven by the inventory ledger.
    """

    id: str
    article_number: str
    variant_id: str
    color: str | None = None
    status: ArticleStatus = ArticleStatus.IN_STOCK
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sold_at: datetime | None = None
    deleted: bool = False


@dataclass
class ProductVariant:
    """Aggregate root for the stock ledger of one SKU.

    Invariants:
    - no counter ever goes below zero
    - counters only move in pairs, so their sum is constant for every
      reserve / sell / release movement
    """

    id: str
    model_name: str
    brand: str
    storage: str
    price: Money
    available_stock: int = 0
    reserved_stock: int = 0
    sold_stock: int = 0

    @property
    def total_stock(self) -> int:
        return self.available_stock + self.reserved_stock + self.sold_stock

    def reserve_available(self, quantity: int) -> None:
        """available -> reserved (a customer placed an order)."""
        self._check_quantity(quantity)
        if quantity > self.available_stock:
            raise StockInvariantViolation(
                f"Cannot reserve {quantity} of {self.model_name}"
                f": only {self.available_stock} available"
            )
        self.available_stock -= quantity
        self.reserved_stock += quantity

    def reserve_to_sold(self, quantity: int) -> None:
        """reserved -> sold (the payment was captured)."""
        self._check_quantity(quantity)
        self._check_reserved(quantity)
        self.reserved_stock -= quantity
        self.sold_stock += quantity

    def release_reservation(self, quantity: int) -> None:
        """reserved -> available (the order was cancelled)."""
        self._check_quantity(quantity)
        self._check_reserved(quantity)
        self.reserved_stock -= quantity
        self.available_stock += quantity

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _check_quantity(quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Stock movement quantity must be positive")

    def _check_reserved(self, quantity: int) -> None:
        if quantity > self.reserved_stock:
            raise StockInvariantViolation(
                f"Cannot move {quantity} of {self.model_name} out of reserved "
                f"stock: only {self.reserved_stock} reserved"
            )
