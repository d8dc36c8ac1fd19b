"""Persistence layer for user data."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import User, UserNotificationPreferences, default_preferences_document
from app.infrastructure.models import UserModel


class UserRepository:
    """Provide read access and creation helpers for user entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        model = self.session.query(UserModel).filter(UserModel.email == email).first()
        return self._to_entity(model) if model else None

    def list_active(self) -> Sequence[User]:
        query = (
            self.session.query(UserModel)
            .filter(UserModel.is_active.is_(True))
            .order_by(UserModel.id)
        )
        return [self._to_entity(model) for model in query.all()]

    def create(
        self,
        *,
        name: str,
        email: str,
        role: str = "user",
        preferences: dict[str, Any] | None = None,
    ) -> User:
        model = UserModel(
            name=name,
            email=email,
            role=role,
            is_active=True,
            preferences=(
                preferences if preferences is not None else default_preferences_document()
            ),
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
            is_active=model.is_active,
            preferences=UserNotificationPreferences.from_dict(model.preferences),
            created_at=model.created_at,
        )


__all__ = ["UserRepository"]
