"""Abstract repository for ProductVariant stock counters.

The three movement methods must be applied as atomic increments in the
backing store (never read-modify-write), and must raise
StockInvariantViolation instead of letting a counter go negative.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from retail.domain.model.inventory import ProductVariant


class VariantRepository(ABC):

    @abstractmethod
    def get_by_id(self, variant_id: str) -> ProductVariant | None:
        """Return the variant with its current counters, or None."""

    @abstractmethod
    def list_all(self) -> list[ProductVariant]:
        """Return every variant."""

    @abstractmethod
    def add(self, variant: ProductVariant) -> None:
        """Persist a new variant."""

    @abstractmethod
    def reserve_available(self, variant_id: str, quantity: int) -> None:
        """available -= quantity, reserved += quantity."""

    @abstractmethod
    def reserve_to_sold(self, variant_id: str, quantity: int) -> None:
        """reserved -= quantity, sold += quantity."""

    @abstractmethod
    def release_reservation(self, variant_id: str, quantity: int) -> None:
        """reserved -= quantity, available += quantity."""
