"""ORM models used by the application infrastructure."""

from .alert import AlertModel
from .email_template import EmailTemplateModel
from .event import EventModel
from .folder import FolderModel
from .judicial_movement import JudicialMovementModel
from .movement import MovementModel
from .notification_log import NotificationLogModel
from .notification_record import NotificationRecordModel
from .task import TASK_CLOSED_STATUSES, TaskModel
from .user import UserModel

NOTIFIABLE_MODELS = {
    "event": EventModel,
    "task": TaskModel,
    "movement": MovementModel,
    "judicial_movement": JudicialMovementModel,
    "folder": FolderModel,
}

__all__ = [
    "AlertModel",
    "EmailTemplateModel",
    "EventModel",
    "FolderModel",
    "JudicialMovementModel",
    "MovementModel",
    "NOTIFIABLE_MODELS",
    "NotificationLogModel",
    "NotificationRecordModel",
    "TASK_CLOSED_STATUSES",
    "TaskModel",
    "UserModel",
]
