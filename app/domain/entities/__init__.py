"""Domain entities exposed by the application."""

from .alert import Alert
from .email_template import EmailTemplate, RenderedTemplate
from .notifiable import (
    ENTITY_EVENT,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_KINDS,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    JUDICIAL_STATUS_FAILED,
    JUDICIAL_STATUS_PENDING,
    JUDICIAL_STATUS_SENT,
    NotifiableEntity,
)
from .notification_log import (
    LOG_ENTITY_TYPES,
    LOG_METHODS,
    LOG_STATUSES,
    LOG_STATUS_CREATED,
    LOG_STATUS_DELIVERED,
    LOG_STATUS_FAILED,
    LOG_STATUS_PENDING,
    LOG_STATUS_RETRY,
    LOG_STATUS_SENT,
    NotificationLog,
    NotificationStats,
)
from .notification_record import (
    ALERT_TYPE_CADUCITY,
    ALERT_TYPE_PRESCRIPTION,
    CHANNEL_BROWSER,
    CHANNEL_EMAIL,
    CHANNEL_SYSTEM,
    NotificationRecord,
    generate_notification_id,
)
from .notification_settings import (
    DEFAULT_CADUCITY_DAYS,
    DEFAULT_DAYS_IN_ADVANCE,
    DEFAULT_NOTIFY_ONCE_ONLY,
    DEFAULT_PRESCRIPTION_DAYS,
    InactivitySettings,
    NotificationSettings,
    ResolvedSettings,
    UserNotificationPreferences,
    default_preferences_document,
)
from .outcome import (
    OUTCOME_DELIVERY_FAILED,
    OUTCOME_DISABLED,
    OUTCOME_INVALID_CONFIGURATION,
    OUTCOME_NOTHING_DUE,
    OUTCOME_NOTIFIED,
    OUTCOME_USER_NOT_FOUND,
    NotificationOutcome,
    RecordingResult,
    SequentialReport,
)
from .user import User

__all__ = [
    "Alert",
    "EmailTemplate",
    "RenderedTemplate",
    "ENTITY_EVENT",
    "ENTITY_FOLDER",
    "ENTITY_JUDICIAL_MOVEMENT",
    "ENTITY_KINDS",
    "ENTITY_MOVEMENT",
    "ENTITY_TASK",
    "JUDICIAL_STATUS_FAILED",
    "JUDICIAL_STATUS_PENDING",
    "JUDICIAL_STATUS_SENT",
    "NotifiableEntity",
    "LOG_ENTITY_TYPES",
    "LOG_METHODS",
    "LOG_STATUSES",
    "LOG_STATUS_CREATED",
    "LOG_STATUS_DELIVERED",
    "LOG_STATUS_FAILED",
    "LOG_STATUS_PENDING",
    "LOG_STATUS_RETRY",
    "LOG_STATUS_SENT",
    "NotificationLog",
    "NotificationStats",
    "ALERT_TYPE_CADUCITY",
    "ALERT_TYPE_PRESCRIPTION",
    "CHANNEL_BROWSER",
    "CHANNEL_EMAIL",
    "CHANNEL_SYSTEM",
    "NotificationRecord",
    "generate_notification_id",
    "DEFAULT_CADUCITY_DAYS",
    "DEFAULT_DAYS_IN_ADVANCE",
    "DEFAULT_NOTIFY_ONCE_ONLY",
    "DEFAULT_PRESCRIPTION_DAYS",
    "InactivitySettings",
    "NotificationSettings",
    "ResolvedSettings",
    "UserNotificationPreferences",
    "default_preferences_document",
    "OUTCOME_DELIVERY_FAILED",
    "OUTCOME_DISABLED",
    "OUTCOME_INVALID_CONFIGURATION",
    "OUTCOME_NOTHING_DUE",
    "OUTCOME_NOTIFIED",
    "OUTCOME_USER_NOT_FOUND",
    "NotificationOutcome",
    "RecordingResult",
    "SequentialReport",
    "User",
]
