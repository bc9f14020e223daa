"""Domain service: Inventory Ledger.

Keeps the per-variant stock counters and the per-article statuses in
step with order state changes.  It never opens or commits a transaction
itself: every call runs inside the unit of work of the flow that uses it,
so any failure here rolls back the whole flow.

Counters move by order-line quantity, aggregated per variant, so each
variant receives exactly one movement per flow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from retail.domain.exceptions import EntityNotFoundError, StockInvariantViolation
from retail.domain.model.inventory import ArticleStatus
from retail.domain.model.order import Order, OrderItem
from retail.domain.repository.article_repository import ArticleRepository
from retail.domain.repository.variant_repository import VariantRepository

logger = logging.getLogger(__name__)


def aggregate_quantities(items: list[OrderItem]) -> dict[str, int]:
    """Sum line quantities per variant, keeping first-seen order."""
    totals: dict[str, int] = {}
    for item in items:
        totals[item.variant_id] = totals.get(item.variant_id, 0) + item.quantity.value
    return totals


@dataclass(frozen=True)
class StockAudit:
    """Counters of a variant next to the article counts they must mirror."""

    variant_id: str
    model_name: str
    counters: dict[ArticleStatus, int]
    articles: dict[ArticleStatus, int]

    @property
    def drift(self) -> dict[ArticleStatus, int]:
        """counter - article count, for every status where they disagree."""
        return {
            status: self.counters[status] - self.articles.get(status, 0)
            for status in self.counters
            if self.counters[status] != self.articles.get(status, 0)
        }

    @property
    def is_consistent(self) -> bool:
        return not self.drift


class InventoryLedger:

    def __init__(
        self,
        variant_repo: VariantRepository,
        article_repo: ArticleRepository,
    ) -> None:
        self._variant_repo = variant_repo
        self._article_repo = article_repo

    # --- Counter movements ----------------------------------------------------

    def reserve_available(self, variant_id: str, quantity: int) -> None:
        self._variant_repo.reserve_available(variant_id, quantity)
        logger.info("variant %s: %d available -> reserved", variant_id, quantity)

    def reserve_to_sold(self, variant_id: str, quantity: int) -> None:
        self._variant_repo.reserve_to_sold(variant_id, quantity)
        logger.info("variant %s: %d reserved -> sold", variant_id, quantity)

    def release_reservation(self, variant_id: str, quantity: int) -> None:
        self._variant_repo.release_reservation(variant_id, quantity)
        logger.info("variant %s: %d reserved -> available", variant_id, quantity)

    # --- Article companions ---------------------------------------------------

    def mark_reserved(self, article_id: str) -> None:
        """IN_STOCK -> RESERVED.  Losing the article to another order is fatal."""
        if not self._article_repo.transition(
            article_id, ArticleStatus.IN_STOCK, ArticleStatus.RESERVED
        ):
            raise StockInvariantViolation(
                f"Article {article_id} is no longer in stock"
            )

    def mark_sold(self, article_id: str, sold_at: datetime) -> None:
        """RESERVED -> SOLD, stamping the sale time.

        An article that is not RESERVED at this point belongs to no
        pending order any more, so selling it would double-claim it.
        """
        article = self._article_repo.get_by_id(article_id)
        if article is None:
            raise EntityNotFoundError(f"Article {article_id} not found")
        if article.status != ArticleStatus.RESERVED or not self._article_repo.transition(
            article_id, ArticleStatus.RESERVED, ArticleStatus.SOLD, sold_at=sold_at
        ):
            raise StockInvariantViolation(
                f"Article {article.article_number} is {article.status.value}, "
                f"cannot mark it SOLD"
            )

    def mark_available(self, article_id: str) -> bool:
        """RESERVED -> IN_STOCK.

        Returns False and leaves the article alone when it is not
        RESERVED (e.g. already SOLD); a stale cancellation must never put
        a sold phone back on the shelf.
        """
        article = self._article_repo.get_by_id(article_id)
        if article is None or article.status != ArticleStatus.RESERVED:
            logger.warning(
                "article %s not released: status is %s",
                article_id,
                article.status.value if article else "missing",
            )
            return False
        return self._article_repo.transition(
            article_id, ArticleStatus.RESERVED, ArticleStatus.IN_STOCK
        )

    # --- Whole-order movements ------------------------------------------------

    def settle_order(self, order: Order, sold_at: datetime) -> None:
        """Payment captured: every allocated article becomes SOLD and the
        reserved quantities of each variant move to sold."""
        for item in order.items:
            if item.article_id is None:
                self._warn_unallocated(order, item)
                continue
            self.mark_sold(item.article_id, sold_at)

        for variant_id, quantity in aggregate_quantities(order.items).items():
            self.reserve_to_sold(variant_id, quantity)

    def release_order(self, order: Order) -> None:
        """Order cancelled: reserved articles go back on the shelf and the
        reserved quantities of each variant become available again.

        Counters still move by the full line quantity when an article
        could not be released; the variant is named in a warning so the
        drift shows up before the next stock audit.
        """
        skipped: dict[str, int] = {}
        for item in order.items:
            if item.article_id is None:
                self._warn_unallocated(order, item)
                continue
            if not self.mark_available(item.article_id):
                skipped[item.variant_id] = skipped.get(item.variant_id, 0) + 1

        for variant_id, quantity in aggregate_quantities(order.items).items():
            self.release_reservation(variant_id, quantity)
            if variant_id in skipped:
                logger.warning(
                    "order %s: %d article(s) of variant %s were not RESERVED; "
                    "counters released by order quantity %d, run a stock audit",
                    order.order_number,
                    skipped[variant_id],
                    variant_id,
                    quantity,
                )

    # --- Consistency check ----------------------------------------------------

    def audit_variant(self, variant_id: str) -> StockAudit:
        variant = self._variant_repo.get_by_id(variant_id)
        if variant is None:
            raise EntityNotFoundError(f"Variant {variant_id} not found")
        return StockAudit(
            variant_id=variant.id,
            model_name=variant.model_name,
            counters={
                ArticleStatus.IN_STOCK: variant.available_stock,
                ArticleStatus.RESERVED: variant.reserved_stock,
                ArticleStatus.SOLD: variant.sold_stock,
            },
            articles=self._article_repo.count_by_status(variant_id),
        )

    @staticmethod
    def _warn_unallocated(order: Order, item: OrderItem) -> None:
        logger.warning(
            "order %s line %s (%s) has no allocated article; "
            "only the variant counters are moved",
            order.order_number,
            item.id,
            item.product_name,
        )
