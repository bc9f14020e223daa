"""Application services: Show Stock and Audit Stock (queries)."""

from __future__ import annotations

from retail.application.dto import StockLineDTO
from retail.domain.repository.unit_of_work import UnitOfWork
from retail.domain.service.inventory_ledger import InventoryLedger, StockAudit


class ShowStockHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self) -> list[StockLineDTO]:
        with self._uow as uow:
            variants = uow.variants.list_all()
        return [
            StockLineDTO(
                variant_id=v.id,
                model_name=v.model_name,
                brand=v.brand,
                storage=v.storage,
                available=v.available_stock,
                reserved=v.reserved_stock,
                sold=v.sold_stock,
            )
            for v in variants
        ]


class AuditStockHandler:
    """Compare every variant's counters with its article statuses."""

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self) -> list[StockAudit]:
        with self._uow as uow:
            ledger = InventoryLedger(uow.variants, uow.articles)
            return [ledger.audit_variant(v.id) for v in uow.variants.list_all()]
