"""Unit tests for the permission table and the access-control gate."""

from datetime import timedelta

import pytest

from retail.domain.exceptions import ForbiddenError
from retail.domain.model.user import AccountStatus, Role, RoleGrant, User
from retail.domain.service.access_control import (
    PERMISSION_CATALOGUE,
    AccessControlGate,
    PermissionTable,
)
from tests.factories import T0


@pytest.fixture(scope="module")
def table():
    return PermissionTable.default()


@pytest.fixture
def gate(table):
    return AccessControlGate(table)


class TestPermissionTable:

    def test_store_manager_may_cancel_orders(self, table):
        assert table.has_permission(Role.STORE_MANAGER, "orders.cancel")

    def test_sales_rep_may_not_cancel_orders(self, table):
        assert not table.has_permission(Role.SALES_REPRESENTATIVE, "orders.cancel")

    def test_plain_user_has_no_back_office_permission(self, table):
        assert table.permissions_for(Role.USER) == frozenset()

    def test_unknown_action_is_denied(self, table):
        assert not table.has_permission(Role.SUPER_ADMIN, "orders.teleport")

    def test_all_and_any(self, table):
        assert table.has_all_permissions(Role.FINANCIAL_MANAGER, ["orders.view_all", "reports.financial"])
        assert not table.has_all_permissions(Role.FINANCIAL_MANAGER, ["orders.view_all", "orders.cancel"])
        assert table.has_any_permission(Role.FINANCIAL_MANAGER, ["orders.cancel", "reports.financial"])
        assert not table.has_any_permission(Role.DATA_ANALYST, ["orders.cancel", "stock.adjust"])

    def test_every_catalogue_entry_is_inverted(self, table):
        for action, roles in PERMISSION_CATALOGUE.items():
            for role in roles:
                assert action in table.permissions_for(role)

    def test_permission_sets_are_immutable(self, table):
        perms = table.permissions_for(Role.SUPER_ADMIN)
        with pytest.raises(AttributeError):
            perms.add("anything")  # type: ignore[attr-defined]

    def test_admin_roles(self):
        assert PermissionTable.is_admin_role(Role.SUPER_ADMIN)
        assert PermissionTable.is_admin_role(Role.OPERATIONS_DIRECTOR)
        assert not PermissionTable.is_admin_role(Role.STORE_MANAGER)


class TestEffectiveRoles:

    def test_primary_plus_unexpired_grants(self):
        user = User(
            id="u",
            email="u@example.com",
            role=Role.SALES_REPRESENTATIVE,
            secondary_roles=[
                RoleGrant(Role.STORE_MANAGER, expires_at=T0 + timedelta(hours=1)),
                RoleGrant(Role.SUPER_ADMIN, expires_at=T0 - timedelta(seconds=1)),
                RoleGrant(Role.DATA_ANALYST),
            ],
        )
        assert user.effective_roles(T0) == {
            Role.SALES_REPRESENTATIVE,
            Role.STORE_MANAGER,
            Role.DATA_ANALYST,
        }

    def test_grant_expiring_exactly_now_is_inactive(self):
        assert not RoleGrant(Role.STORE_MANAGER, expires_at=T0).is_active(T0)


class TestAuthorize:

    def test_primary_role_with_permission_passes(self, gate):
        user = User(id="m", email="m@example.com", role=Role.STORE_MANAGER)
        assert gate.authorize(user, Role.STORE_MANAGER, "orders.cancel", T0) == Role.STORE_MANAGER

    def test_secondary_role_passes_while_active(self, gate):
        user = User(
            id="c",
            email="c@example.com",
            role=Role.SALES_REPRESENTATIVE,
            secondary_roles=[RoleGrant(Role.STORE_MANAGER, expires_at=T0 + timedelta(days=1))],
        )
        assert gate.authorize(user, Role.STORE_MANAGER, "orders.cancel", T0) == Role.STORE_MANAGER

    def test_expired_secondary_role_forbidden(self, gate):
        user = User(
            id="c",
            email="c@example.com",
            role=Role.SALES_REPRESENTATIVE,
            secondary_roles=[RoleGrant(Role.STORE_MANAGER, expires_at=T0 - timedelta(days=1))],
        )
        with pytest.raises(ForbiddenError, match="not held by this user or has expired"):
            gate.authorize(user, Role.STORE_MANAGER, "orders.cancel", T0)

    def test_claimed_role_not_held_forbidden_regardless_of_action(self, gate):
        user = User(id="c", email="c@example.com", role=Role.SALES_REPRESENTATIVE)
        for action in ("orders.cancel", "orders.view_own", "products.view_all"):
            with pytest.raises(ForbiddenError, match="not held"):
                gate.authorize(user, Role.SUPER_ADMIN, action, T0)

    def test_role_without_permission_forbidden(self, gate):
        user = User(id="c", email="c@example.com", role=Role.SALES_REPRESENTATIVE)
        with pytest.raises(ForbiddenError, match="not allowed to perform 'orders.cancel'"):
            gate.authorize(user, Role.SALES_REPRESENTATIVE, "orders.cancel", T0)

    @pytest.mark.parametrize("status", [AccountStatus.INACTIVE, AccountStatus.SUSPENDED])
    def test_inactive_account_forbidden_even_for_super_admin(self, gate, status):
        user = User(id="s", email="s@example.com", role=Role.SUPER_ADMIN, status=status)
        with pytest.raises(ForbiddenError, match="inactive or suspended"):
            gate.authorize(user, Role.SUPER_ADMIN, "orders.cancel", T0)

    def test_missing_acting_role_forbidden(self, gate):
        user = User(id="s", email="s@example.com", role=Role.SUPER_ADMIN)
        with pytest.raises(ForbiddenError, match="acting role is required"):
            gate.authorize(user, None, "orders.cancel", T0)
