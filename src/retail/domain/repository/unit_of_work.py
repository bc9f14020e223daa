"""Unit of Work: one atomic transaction spanning every repository.

Handlers use it as a context manager::

    with self._uow as uow:
        order = uow.orders.get_for_update(order_id)
        ...

Leaving the block normally commits; leaving it with an exception rolls
back every change made through the repositories and re-raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from retail.domain.repository.article_repository import ArticleRepository
from retail.domain.repository.order_repository import OrderRepository
from retail.domain.repository.payment_repository import PaymentRepository
from retail.domain.repository.status_history_repository import StatusHistoryRepository
from retail.domain.repository.user_repository import UserRepository
from retail.domain.repository.variant_repository import VariantRepository


class UnitOfWork(ABC):

    orders: OrderRepository
    variants: VariantRepository
    articles: ArticleRepository
    payments: PaymentRepository
    history: StatusHistoryRepository
    users: UserRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change since ``__enter__`` durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard every change since ``__enter__``."""
