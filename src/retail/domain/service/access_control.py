"""Domain service: Access-Control Gate.

The permission catalogue below lists, for every back-office action, the
roles allowed to perform it.  ``PermissionTable`` turns it into an
immutable role -> actions mapping that is built once by the composition
root and handed to every handler that needs it.

``AccessControlGate.authorize`` runs all checks before the caller
touches any state:

1. the account is ACTIVE;
2. the claimed acting role is one of the user's effective roles
   (primary role plus non-expired secondary grants);
3. that role grants the requested permission.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from types import MappingProxyType

from retail.domain.exceptions import ForbiddenError
from retail.domain.model.user import Role, User

_SA = Role.SUPER_ADMIN
_OD = Role.OPERATIONS_DIRECTOR
_FM = Role.FINANCIAL_MANAGER
_DA = Role.DATA_ANALYST
_IM = Role.INVENTORY_MANAGER
_SM = Role.STORE_MANAGER
_AM = Role.ASSISTANT_MANAGER
_SR = Role.SALES_REPRESENTATIVE

PERMISSION_CATALOGUE: dict[str, tuple[Role, ...]] = {
    # Stores
    "stores.view_all": (_SA, _OD, _FM, _DA, _IM),
    "stores.view_own": (_SM, _AM, _SR),
    "stores.create": (_SA,),
    "stores.update": (_SA, _OD, _SM),
    "stores.delete": (_SA,),
    # Product models
    "products.view_all": (_SA, _OD, _FM, _DA, _IM, _SM, _AM, _SR),
    "products.create": (_SA, _OD, _IM),
    "products.update": (_SA, _OD, _IM),
    "products.delete": (_SA, _OD),
    # Articles (physical units)
    "articles.view_all": (_SA, _OD, _FM, _DA, _IM),
    "articles.view_store": (_SM, _AM, _SR),
    "articles.create": (_SA, _OD, _IM, _SM),
    "articles.update": (_SA, _OD, _IM, _SM),
    "articles.delete": (_SA, _OD, _IM),
    "articles.transfer": (_SA, _OD, _IM, _SM),
    # Suppliers
    "suppliers.view_all": (_SA, _OD, _FM, _IM),
    "suppliers.create": (_SA, _OD, _IM),
    "suppliers.update": (_SA, _OD, _IM),
    "suppliers.delete": (_SA, _OD),
    # Stock
    "stock.view_global": (_SA, _OD, _FM, _DA, _IM),
    "stock.view_store": (_SM, _AM, _SR),
    "stock.adjust": (_SA, _OD, _IM, _SM),
    "stock.transfer_request": (_SA, _OD, _IM, _SM, _AM),
    "stock.transfer_approve": (_SA, _OD, _IM, _SM),
    "stock.view_history": (_SA, _OD, _FM, _DA, _IM, _SM, _AM),
    # Orders
    "orders.view_all": (_SA, _OD, _FM, _DA),
    "orders.view_store": (_IM, _SM, _AM),
    "orders.view_own": (_SR,),
    "orders.create": (_SA, _OD, _SM, _AM, _SR),
    "orders.update": (_SA, _OD, _SM, _AM),
    "orders.cancel": (_SA, _OD, _SM),
    # Users
    "users.view_all": (_SA, _OD),
    "users.view_store": (_SM,),
    "users.create": (_SA, _OD, _SM),
    "users.update": (_SA, _OD, _SM),
    "users.delete": (_SA, _OD),
    # Reports
    "reports.view_global": (_SA, _OD, _FM, _DA),
    "reports.view_store": (_IM, _SM, _AM),
    "reports.financial": (_SA, _FM, _DA),
    "reports.export": (_SA, _OD, _FM, _DA, _IM),
    # Incidents
    "incidents.view_all": (_SA, _OD),
    "incidents.view_store": (_SM, _AM),
    "incidents.create": (_SA, _OD, _SM, _AM),
    "incidents.update": (_SA, _OD, _SM),
    "incidents.delete": (_SA,),
}

ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.OPERATIONS_DIRECTOR})


class PermissionTable:
    """Immutable role -> permitted actions mapping."""

    def __init__(self, catalogue: Mapping[str, Iterable[Role]]) -> None:
        by_role: dict[Role, set[str]] = {role: set() for role in Role}
        for action, roles in catalogue.items():
            for role in roles:
                by_role[role].add(action)
        self._by_role: Mapping[Role, frozenset[str]] = MappingProxyType(
            {role: frozenset(actions) for role, actions in by_role.items()}
        )

    @classmethod
    def default(cls) -> PermissionTable:
        return cls(PERMISSION_CATALOGUE)

    def has_permission(self, role: Role, action: str) -> bool:
        return action in self._by_role.get(role, frozenset())

    def has_all_permissions(self, role: Role, actions: Iterable[str]) -> bool:
        return all(self.has_permission(role, action) for action in actions)

    def has_any_permission(self, role: Role, actions: Iterable[str]) -> bool:
        return any(self.has_permission(role, action) for action in actions)

    def permissions_for(self, role: Role) -> frozenset[str]:
        return self._by_role.get(role, frozenset())

    @staticmethod
    def is_admin_role(role: Role) -> bool:
        return role in ADMIN_ROLES


class AccessControlGate:

    def __init__(self, permissions: PermissionTable) -> None:
        self._permissions = permissions

    @property
    def permissions(self) -> PermissionTable:
        return self._permissions

    def authorize(
        self,
        user: User,
        acting_role: Role | None,
        permission: str,
        now: datetime,
    ) -> Role:
        """Return the acting role if every check passes, else raise ForbiddenError."""
        if not user.is_active:
            raise ForbiddenError("User account is inactive or suspended")

        if acting_role is None:
            raise ForbiddenError("An acting role is required for this action")

        if acting_role not in user.effective_roles(now):
            raise ForbiddenError(
                f"Role {acting_role.value} is not held by this user or has expired"
            )

        if not self._permissions.has_permission(acting_role, permission):
            raise ForbiddenError(
                f"Role {acting_role.value} is not allowed to perform '{permission}'"
            )

        return acting_role
