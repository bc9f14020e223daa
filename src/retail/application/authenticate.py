"""Application service: resolve the caller's identity into an Actor.

Stands in for the host framework's session lookup: the HTTP layer hands
over whatever identity the request carried and gets back an explicit
Actor that is threaded into every flow.
"""

from __future__ import annotations

from retail.application.dto import Actor
from retail.domain.exceptions import AuthenticationError, ForbiddenError
from retail.domain.model.user import Role
from retail.domain.repository.unit_of_work import UnitOfWork


class AuthenticateHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(self, user_id: str | None, acting_role: str | None = None) -> Actor:
        if not user_id:
            raise AuthenticationError("Authentication required")

        with self._uow as uow:
            user = uow.users.get_by_id(user_id)
        if user is None:
            raise AuthenticationError("Unknown user")

        if acting_role is None:
            return Actor.customer(user.id)
        return Actor.staff(user.id, parse_role(acting_role))


def parse_role(raw: str) -> Role:
    try:
        return Role(raw.strip().upper())
    except ValueError as exc:
        raise ForbiddenError(f"Unknown role '{raw}'") from exc
