"""Notification delivery helpers for the infrastructure layer."""

from .browser import (
    EVENT_AUTHENTICATED,
    EVENT_AUTHENTICATION_ERROR,
    EVENT_NEW_ALERT,
    EVENT_PENDING_ALERTS,
    EVENT_SESSION_EXPIRED,
    BrowserChannel,
    serialize_alert,
)
from .recorder import NotificationRecorder
from .registry import ConnectionRegistry, RealtimeConnection
from .templates import (
    CATEGORY_ADMINISTRATION,
    CATEGORY_NOTIFICATIONS,
    DEFAULT_TEMPLATES,
    TEMPLATE_CALENDAR,
    TEMPLATE_FOLDER_CADUCITY,
    TEMPLATE_FOLDER_PRESCRIPTION,
    TEMPLATE_JUDICIAL_MOVEMENTS,
    TEMPLATE_MOVEMENTS,
    TEMPLATE_NOTIFICATIONS_REPORT,
    TEMPLATE_TASKS,
    TemplateRenderer,
    substitute,
)

__all__ = [
    "BrowserChannel",
    "CATEGORY_ADMINISTRATION",
    "CATEGORY_NOTIFICATIONS",
    "ConnectionRegistry",
    "DEFAULT_TEMPLATES",
    "EVENT_AUTHENTICATED",
    "EVENT_AUTHENTICATION_ERROR",
    "EVENT_NEW_ALERT",
    "EVENT_PENDING_ALERTS",
    "EVENT_SESSION_EXPIRED",
    "NotificationRecorder",
    "RealtimeConnection",
    "TEMPLATE_CALENDAR",
    "TEMPLATE_FOLDER_CADUCITY",
    "TEMPLATE_FOLDER_PRESCRIPTION",
    "TEMPLATE_JUDICIAL_MOVEMENTS",
    "TEMPLATE_MOVEMENTS",
    "TEMPLATE_NOTIFICATIONS_REPORT",
    "TEMPLATE_TASKS",
    "TemplateRenderer",
    "serialize_alert",
    "substitute",
]
