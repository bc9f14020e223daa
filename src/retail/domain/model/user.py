"""User account as seen by the access-control gate.

A user has one primary role and any number of secondary role grants;
a secondary grant may carry an expiry date after which it no longer
counts towards the user's effective roles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(Enum):
    USER = "USER"
    SUPER_ADMIN = "SUPER_ADMIN"
    OPERATIONS_DIRECTOR = "OPERATIONS_DIRECTOR"
    FINANCIAL_MANAGER = "FINANCIAL_MANAGER"
    DATA_ANALYST = "DATA_ANALYST"
    INVENTORY_MANAGER = "INVENTORY_MANAGER"
    STORE_MANAGER = "STORE_MANAGER"
    ASSISTANT_MANAGER = "ASSISTANT_MANAGER"
    SALES_REPRESENTATIVE = "SALES_REPRESENTATIVE"


class AccountStatus(Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


@dataclass(frozen=True)
class RoleGrant:
    role: Role
    expires_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


@dataclass
class User:

    id: str
    email: str
    role: Role = Role.USER
    status: AccountStatus = AccountStatus.ACTIVE
    secondary_roles: list[RoleGrant] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def effective_roles(self, now: datetime) -> frozenset[Role]:
        """Primary role plus every secondary grant that has not expired."""
        roles = {self.role}
        roles.update(grant.role for grant in self.secondary_roles if grant.is_active(now))
        return frozenset(roles)
