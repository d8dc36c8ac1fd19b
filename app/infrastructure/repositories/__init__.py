"""Repository implementations for infrastructure layer."""

from .alert_repository import AlertRepository
from .email_template_repository import EmailTemplateRepository
from .notifiable_repository import (
    JudicialMovementRepository,
    NotifiableRepository,
    folder_last_activity,
)
from .notification_log_repository import NotificationLogRepository
from .user_repository import UserRepository

__all__ = [
    "AlertRepository",
    "EmailTemplateRepository",
    "JudicialMovementRepository",
    "NotifiableRepository",
    "NotificationLogRepository",
    "UserRepository",
    "folder_last_activity",
]
