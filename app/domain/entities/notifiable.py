"""Domain entity shared by every kind of record that can trigger notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .notification_record import NotificationRecord
from .notification_settings import NotificationSettings

ENTITY_EVENT = "event"
ENTITY_TASK = "task"
ENTITY_MOVEMENT = "movement"
ENTITY_JUDICIAL_MOVEMENT = "judicial_movement"
ENTITY_FOLDER = "folder"

ENTITY_KINDS = (
    ENTITY_EVENT,
    ENTITY_TASK,
    ENTITY_MOVEMENT,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_FOLDER,
)

JUDICIAL_STATUS_PENDING = "pending"
JUDICIAL_STATUS_SENT = "sent"
JUDICIAL_STATUS_FAILED = "failed"


@dataclass
class NotifiableEntity:
    """A calendar event, task, movement, judicial movement or folder.

    ``trigger_date`` carries the date the notice period is computed from: the
    event start, the task due date, the movement expiration, the judicial
    movement date or the most recent activity of a folder.
    """

    id: int | None
    kind: str
    user_id: int
    trigger_date: datetime | None
    title: str = ""
    description: str | None = None
    notifications: list[NotificationRecord] = field(default_factory=list)
    notification_settings: NotificationSettings | None = None
    browser_alert_sent: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)

    def records_for(
        self,
        channel: str,
        *,
        alert_type: str | None = None,
        successful_only: bool = True,
    ) -> list[NotificationRecord]:
        """Return history entries of ``channel`` (and ``alert_type`` when given)."""

        return [
            record
            for record in self.notifications
            if record.channel == channel
            and (alert_type is None or record.alert_type == alert_type)
            and (record.success or not successful_only)
        ]


__all__ = [
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
]
