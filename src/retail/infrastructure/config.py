"""Process configuration read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from retail.domain.model.value_objects import DEFAULT_CURRENCY

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./retail.db"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_api_base: str = "https://api.stripe.com"
    public_url: str = "http://localhost:3000"
    currency: str = DEFAULT_CURRENCY
    log_level: str = "INFO"
    sql_echo: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("RETAIL_DATABASE_URL", cls.database_url),
            stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
            stripe_api_base=env.get("STRIPE_API_BASE", cls.stripe_api_base),
            public_url=env.get("RETAIL_PUBLIC_URL", cls.public_url),
            currency=env.get("RETAIL_CURRENCY", DEFAULT_CURRENCY).upper(),
            log_level=env.get("RETAIL_LOG_LEVEL", "INFO").upper(),
            sql_echo=env.get("RETAIL_SQL_ECHO", "").lower() in _TRUTHY,
        )
