"""Abstract repository for Order aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (SQL, in-memory) live in the
infrastructure layer and in the test fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from retail.domain.model.order import Order, PaymentStatus


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order with its items, or None if not found."""

    @abstractmethod
    def get_for_update(self, order_id: str) -> Order | None:
        """Like ``get_by_id`` but locks the order row until the transaction ends."""

    @abstractmethod
    def order_number_exists(self, order_number: str) -> bool:
        """True if an order already uses this human-readable number."""

    @abstractmethod
    def add(self, order: Order) -> None:
        """Persist a new order and its items."""

    @abstractmethod
    def update_status(self, order: Order, expected_payment_status: PaymentStatus) -> None:
        """Write the order's status fields if its stored payment status is unchanged.

        Raises ConflictError if another transaction moved the order first.
        """
