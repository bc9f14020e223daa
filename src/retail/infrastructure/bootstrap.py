"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

import random
from functools import lru_cache

from sqlalchemy.engine import Engine

from retail.application.authenticate import AuthenticateHandler
from retail.application.cancel_order import CancelOrderHandler
from retail.application.confirm_payment import ConfirmPaymentHandler
from retail.application.expire_checkout import ExpireCheckoutHandler
from retail.application.fail_payment import FailPaymentHandler
from retail.application.place_order import PlaceOrderHandler
from retail.application.show_order import ShowOrderHandler
from retail.application.show_stock import AuditStockHandler, ShowStockHandler
from retail.application.start_checkout import StartCheckoutHandler
from retail.domain.clock import Clock, SystemClock
from retail.domain.gateway.payment_gateway import PaymentGateway
from retail.domain.service.access_control import AccessControlGate, PermissionTable
from retail.infrastructure.config import Settings
from retail.infrastructure.logging_config import configure_logging
from retail.infrastructure.payments.stripe_gateway import StripePaymentGateway
from retail.infrastructure.persistence.database import (
    create_tables,
    make_engine,
    make_session_factory,
)
from retail.infrastructure.persistence.sql_unit_of_work import SqlUnitOfWork


class Container:
    """Process-wide singletons plus a fresh handler (and unit of work) per call."""

    def __init__(
        self,
        settings: Settings,
        gateway: PaymentGateway | None = None,
        clock: Clock | None = None,
        engine: Engine | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.engine = engine or make_engine(settings.database_url, echo=settings.sql_echo)
        self.session_factory = make_session_factory(self.engine)
        self.clock = clock or SystemClock()
        self.gate = AccessControlGate(PermissionTable.default())
        self.gateway = gateway or StripePaymentGateway(
            settings.stripe_secret_key, api_base=settings.stripe_api_base
        )
        self._rng = rng

    def init_db(self) -> None:
        create_tables(self.engine)

    def uow(self) -> SqlUnitOfWork:
        return SqlUnitOfWork(self.session_factory)

    # --- Handlers -------------------------------------------------------------

    def authenticate(self) -> AuthenticateHandler:
        return AuthenticateHandler(self.uow())

    def place_order(self) -> PlaceOrderHandler:
        return PlaceOrderHandler(self.uow(), self.clock, self.settings.currency, self._rng)

    def confirm_payment(self) -> ConfirmPaymentHandler:
        return ConfirmPaymentHandler(self.uow(), self.gateway, self.clock)

    def cancel_order(self) -> CancelOrderHandler:
        return CancelOrderHandler(self.uow(), self.gate, self.clock, self.gateway.provider)

    def expire_checkout(self) -> ExpireCheckoutHandler:
        return ExpireCheckoutHandler(self.cancel_order())

    def fail_payment(self) -> FailPaymentHandler:
        return FailPaymentHandler(self.cancel_order())

    def start_checkout(self) -> StartCheckoutHandler:
        return StartCheckoutHandler(
            self.uow(), self.gateway, self.clock, self.settings.public_url
        )

    def show_order(self) -> ShowOrderHandler:
        return ShowOrderHandler(self.uow(), self.gate, self.clock)

    def show_stock(self) -> ShowStockHandler:
        return ShowStockHandler(self.uow())

    def audit_stock(self) -> AuditStockHandler:
        return AuditStockHandler(self.uow())


@lru_cache(maxsize=1)
def get_container() -> Container:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return Container(settings)
