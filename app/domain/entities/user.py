"""Domain entity representing a platform user."""

from dataclasses import dataclass, field
from datetime import datetime

from .notification_settings import UserNotificationPreferences


@dataclass
class User:
    """Core attributes of a user receiving notifications."""

    id: int | None
    name: str
    email: str
    role: str = "user"
    is_active: bool = True
    preferences: UserNotificationPreferences = field(
        default_factory=UserNotificationPreferences
    )
    created_at: datetime | None = None

    def is_admin(self) -> bool:
        """Return ``True`` when the user is an administrator."""

        return self.role.lower() == "admin"

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Usuario"


__all__ = ["User"]
