"""SQLAlchemy implementation of UserRepository."""

from __future__ import annotations

from sqlalchemy.orm import Session

from retail.domain.model.user import AccountStatus, Role, RoleGrant, User
from retail.domain.repository.user_repository import UserRepository
from retail.infrastructure.persistence.orm import RoleGrantRow, UserRow


class SqlUserRepository(UserRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, user_id: str) -> User | None:
        row = self._session.get(UserRow, user_id)
        if row is None:
            return None
        return User(
            id=row.id,
            email=row.email,
            role=Role(row.role),
            status=AccountStatus(row.status),
            secondary_roles=[
                RoleGrant(role=Role(g.role), expires_at=g.expires_at) for g in row.grants
            ],
        )

    def add(self, user: User) -> None:
        self._session.add(
            UserRow(
                id=user.id,
                email=user.email,
                role=user.role.value,
                status=user.status.value,
                grants=[
                    RoleGrantRow(role=g.role.value, expires_at=g.expires_at)
                    for g in user.secondary_roles
                ],
            )
        )
        self._session.flush()
