"""Domain entity representing one entry of an entity's notification history."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime

CHANNEL_EMAIL = "email"
CHANNEL_BROWSER = "browser"
CHANNEL_SYSTEM = "system"

ALERT_TYPE_CADUCITY = "caducity"
ALERT_TYPE_PRESCRIPTION = "prescription"


@dataclass
class NotificationRecord:
    """Outcome of a delivery attempt appended to a notifiable entity."""

    date: datetime
    channel: str
    success: bool
    details: str
    notification_id: str | None = None
    alert_type: str | None = None
    id: int | None = None


def generate_notification_id(
    user_id: int | str, entity_id: int | str, channel: str, moment: datetime
) -> str:
    """Return the idempotency hash for a notification sent at ``moment``."""

    timestamp = int(moment.timestamp() * 1000)
    raw = f"{user_id}-{entity_id}-{channel}-{timestamp}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


__all__ = [
    "ALERT_TYPE_CADUCITY",
    "ALERT_TYPE_PRESCRIPTION",
    "CHANNEL_BROWSER",
    "CHANNEL_EMAIL",
    "CHANNEL_SYSTEM",
    "NotificationRecord",
    "generate_notification_id",
]
