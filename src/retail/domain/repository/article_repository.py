"""Abstract repository for physical Articles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from retail.domain.model.inventory import Article, ArticleStatus


class ArticleRepository(ABC):

    @abstractmethod
    def get_by_id(self, article_id: str) -> Article | None:
        """Return an article, or None if not found."""

    @abstractmethod
    def add(self, article: Article) -> None:
        """Persist a new article."""

    @abstractmethod
    def find_in_stock(
        self, variant_id: str, limit: int, color: str | None = None
    ) -> list[Article]:
        """Oldest IN_STOCK, non-deleted articles of a variant (FIFO), at most ``limit``."""

    @abstractmethod
    def transition(
        self,
        article_id: str,
        expected: ArticleStatus,
        target: ArticleStatus,
        sold_at: datetime | None = None,
    ) -> bool:
        """Move an article to ``target`` only if it is currently ``expected``.

        Returns False (and changes nothing) when the stored status differs.
        """

    @abstractmethod
    def count_by_status(self, variant_id: str) -> dict[ArticleStatus, int]:
        """Number of non-deleted articles of a variant per status."""
