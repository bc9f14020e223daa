"""SQLAlchemy implementation of VariantRepository.

Counter movements are single conditional UPDATE statements so two
concurrent transactions can never both pass the underflow check on a
stale read.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from retail.domain.exceptions import StockInvariantViolation, ValidationError
from retail.domain.model.inventory import ProductVariant
from retail.domain.model.value_objects import Money
from retail.domain.repository.variant_repository import VariantRepository
from retail.infrastructure.persistence.orm import VariantRow


class SqlVariantRepository(VariantRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, variant_id: str) -> ProductVariant | None:
        row = self._session.get(VariantRow, variant_id, populate_existing=True)
        return self._to_domain(row) if row else None

    def list_all(self) -> list[ProductVariant]:
        rows = self._session.scalars(
            select(VariantRow).order_by(VariantRow.brand, VariantRow.model_name, VariantRow.storage)
        )
        return [self._to_domain(row) for row in rows]

    def add(self, variant: ProductVariant) -> None:
        self._session.add(
            VariantRow(
                id=variant.id,
                model_name=variant.model_name,
                brand=variant.brand,
                storage=variant.storage,
                price=variant.price.amount,
                currency=variant.price.currency,
                available_stock=variant.available_stock,
                reserved_stock=variant.reserved_stock,
                sold_stock=variant.sold_stock,
            )
        )
        self._session.flush()

    # --- Atomic counter movements ---------------------------------------------

    def reserve_available(self, variant_id: str, quantity: int) -> None:
        self._move(
            variant_id,
            quantity,
            source=VariantRow.available_stock,
            target=VariantRow.reserved_stock,
        )

    def reserve_to_sold(self, variant_id: str, quantity: int) -> None:
        self._move(
            variant_id,
            quantity,
            source=VariantRow.reserved_stock,
            target=VariantRow.sold_stock,
        )

    def release_reservation(self, variant_id: str, quantity: int) -> None:
        self._move(
            variant_id,
            quantity,
            source=VariantRow.reserved_stock,
            target=VariantRow.available_stock,
        )

    def _move(self, variant_id: str, quantity: int, source, target) -> None:
        if quantity <= 0:
            raise ValidationError("Stock movement quantity must be positive")
        stmt = (
            update(VariantRow)
            .where(VariantRow.id == variant_id, source >= quantity)
            .values({source: source - quantity, target: target + quantity})
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if result.rowcount != 1:
            raise StockInvariantViolation(
                f"Cannot move {quantity} unit(s) out of {source.key} "
                f"for variant {variant_id}"
            )

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_domain(row: VariantRow) -> ProductVariant:
        return ProductVariant(
            id=row.id,
            model_name=row.model_name,
            brand=row.brand,
            storage=row.storage,
            price=Money(Decimal(row.price), row.currency),
            available_stock=row.available_stock,
            reserved_stock=row.reserved_stock,
            sold_stock=row.sold_stock,
        )
