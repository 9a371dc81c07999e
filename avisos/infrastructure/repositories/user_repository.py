"""Persistence layer for recipient profiles."""

from __future__ import annotations

from sqlalchemy.orm import Session

from avisos.domain.entities import ROLES, User
from avisos.infrastructure.models import UserModel


class UserRepository:
    """Read and create the user rows the notification channels rely on."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def create(self, user: User) -> User:
        if user.role not in ROLES:
            raise ValueError("Rol no permitido")
        model = UserModel(
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            is_active=user.is_active,
            email_notifications=user.email_notifications,
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            role=model.role,
            phone=model.phone,
            is_active=bool(model.is_active),
            email_notifications=bool(model.email_notifications),
            created_at=model.created_at,
        )


__all__ = ["UserRepository"]
