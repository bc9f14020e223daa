"""SQLAlchemy implementation of ArticleRepository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from retail.domain.model.inventory import Article, ArticleStatus
from retail.domain.repository.article_repository import ArticleRepository
from retail.infrastructure.persistence.orm import ArticleRow


class SqlArticleRepository(ArticleRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, article_id: str) -> Article | None:
        row = self._session.get(ArticleRow, article_id, populate_existing=True)
        return self._to_domain(row) if row else None

    def add(self, article: Article) -> None:
        self._session.add(
            ArticleRow(
                id=article.id,
                article_number=article.article_number,
                variant_id=article.variant_id,
                color=article.color,
                status=article.status.value,
                received_at=article.received_at,
                sold_at=article.sold_at,
                deleted=article.deleted,
            )
        )
        self._session.flush()

    def find_in_stock(
        self, variant_id: str, limit: int, color: str | None = None
    ) -> list[Article]:
        stmt = (
            select(ArticleRow)
            .where(
                ArticleRow.variant_id == variant_id,
                ArticleRow.status == ArticleStatus.IN_STOCK.value,
                ArticleRow.deleted.is_(False),
            )
            .order_by(ArticleRow.received_at, ArticleRow.article_number)
            .limit(limit)
            # Concurrent checkouts pick different phones instead of queueing.
            .with_for_update(skip_locked=True)
        )
        if color is not None:
            stmt = stmt.where(ArticleRow.color == color)
        return [self._to_domain(row) for row in self._session.scalars(stmt)]

    def transition(
        self,
        article_id: str,
        expected: ArticleStatus,
        target: ArticleStatus,
        sold_at: datetime | None = None,
    ) -> bool:
        values: dict = {"status": target.value}
        if sold_at is not None:
            values["sold_at"] = sold_at
        result = self._session.execute(
            update(ArticleRow)
            .where(ArticleRow.id == article_id, ArticleRow.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def count_by_status(self, variant_id: str) -> dict[ArticleStatus, int]:
        rows = self._session.execute(
            select(ArticleRow.status, func.count())
            .where(ArticleRow.variant_id == variant_id, ArticleRow.deleted.is_(False))
            .group_by(ArticleRow.status)
        )
        return {ArticleStatus(status): count for status, count in rows}

    @staticmethod
    def _to_domain(row: ArticleRow) -> Article:
        return Article(
            id=row.id,
            article_number=row.article_number,
            variant_id=row.variant_id,
            color=row.color,
            status=ArticleStatus(row.status),
            received_at=row.received_at,
            sold_at=row.sold_at,
            deleted=row.deleted,
        )
