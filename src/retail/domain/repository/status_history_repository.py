"""Abstract repository for the order status audit trail (append-only)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from retail.domain.model.status_history import OrderStatusHistory


class StatusHistoryRepository(ABC):

    @abstractmethod
    def append(self, entry: OrderStatusHistory) -> None:
        """Record one transition."""

    @abstractmethod
    def list_for_order(self, order_id: str) -> list[OrderStatusHistory]:
        """Transitions of an order, oldest first."""
