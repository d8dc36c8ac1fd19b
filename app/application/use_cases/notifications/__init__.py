"""Eligibility and delivery flows for entity notifications."""

from .browser_alerts import (
    PUSH_BATCH_SIZE,
    create_and_push_alerts,
    push_alerts,
    send_browser_alerts,
    send_folder_browser_alerts,
    send_judicial_browser_alerts,
)
from .content import build_alert
from .eligibility import (
    EligibilityResult,
    MalformedEntityError,
    apply_override,
    countdown_eligible,
    evaluate,
    evaluate_inactivity,
    notification_window,
    resolve_settings,
    select_eligible,
)
from .email_notifications import (
    deliver_email,
    kind_enabled,
    send_calendar_notifications,
    send_due_date_notifications,
    send_folder_inactivity_notifications,
    send_judicial_movement_notifications,
    send_movement_notifications,
    send_task_notifications,
)
from .judicial_movements import (
    build_unique_key,
    calculate_notify_at,
    register_judicial_movement,
)

__all__ = [
    "EligibilityResult",
    "MalformedEntityError",
    "PUSH_BATCH_SIZE",
    "apply_override",
    "build_alert",
    "build_unique_key",
    "calculate_notify_at",
    "countdown_eligible",
    "create_and_push_alerts",
    "deliver_email",
    "evaluate",
    "evaluate_inactivity",
    "kind_enabled",
    "notification_window",
    "push_alerts",
    "register_judicial_movement",
    "resolve_settings",
    "select_eligible",
    "send_browser_alerts",
    "send_calendar_notifications",
    "send_due_date_notifications",
    "send_folder_browser_alerts",
    "send_folder_inactivity_notifications",
    "send_judicial_browser_alerts",
    "send_judicial_movement_notifications",
    "send_movement_notifications",
    "send_task_notifications",
]
