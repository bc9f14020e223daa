"""Fixtures for the SQLAlchemy-backed tests: one in-memory SQLite database per test."""

import pytest

from retail.infrastructure.persistence.database import (
    create_tables,
    make_engine,
    make_session_factory,
)
from retail.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork
from tests.factories import seed_users


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def uow(session_factory):
    uow = SqlUnitOfWork(session_factory)
    seed_users(uow)
    return uow
