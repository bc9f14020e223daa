"""Abstract repository for Payment records (insert-only)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from retail.domain.model.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    def add(self, payment: Payment) -> None:
        """Persist a new payment record."""

    @abstractmethod
    def list_for_order(self, order_id: str) -> list[Payment]:
        """Payments of an order, oldest first."""
