"""SQLAlchemy unit of work: one Session per ``with`` block."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, sessionmaker

from retail.domain.repository.unit_of_work import UnitOfWork
from retail.infrastructure.persistence.sql_article_repository import SqlArticleRepository
from retail.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from retail.infrastructure.persistence.sql_payment_repository import (
    SqlPaymentRepository,
    SqlStatusHistoryRepository,
)
from retail.infrastructure.persistence.sql_user_repository import SqlUserRepository
from retail.infrastructure.persistence.sql_variant_repository import SqlVariantRepository

logger = logging.getLogger(__name__)


class SqlUnitOfWork(UnitOfWork):
    """Not shareable between threads; build one per request."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> SqlUnitOfWork:
        self._session = self._session_factory()
        self.orders = SqlOrderRepository(self._session)
        self.variants = SqlVariantRepository(self._session)
        self.articles = SqlArticleRepository(self._session)
        self.payments = SqlPaymentRepository(self._session)
        self.history = SqlStatusHistoryRepository(self._session)
        self.users = SqlUserRepository(self._session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            super().__exit__(exc_type, exc, tb)
            if exc_type is not None:
                logger.warning(
                    "transaction rolled back: %s", exc, exc_info=(exc_type, exc, tb)
                )
        finally:
            self._session.close()
            self._session = None

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()
