"""Domain entity for the cross-entity notification audit trail."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

LOG_STATUS_CREATED = "created"
LOG_STATUS_SENT = "sent"
LOG_STATUS_DELIVERED = "delivered"
LOG_STATUS_FAILED = "failed"
LOG_STATUS_PENDING = "pending"
LOG_STATUS_RETRY = "retry"

LOG_STATUSES = (
    LOG_STATUS_CREATED,
    LOG_STATUS_SENT,
    LOG_STATUS_DELIVERED,
    LOG_STATUS_FAILED,
    LOG_STATUS_PENDING,
    LOG_STATUS_RETRY,
)

LOG_METHODS = ("email", "browser", "webhook", "sms")
LOG_ENTITY_TYPES = (
    "event",
    "task",
    "movement",
    "judicial_movement",
    "folder",
    "alert",
    "custom",
)


@dataclass
class NotificationLog:
    """One delivery attempt for one entity over one channel."""

    id: int | None
    user_id: int
    entity_type: str
    entity_id: int | None
    method: str
    status: str
    entity_snapshot: dict[str, Any] = field(default_factory=dict)
    content: dict[str, Any] = field(default_factory=dict)
    delivery: dict[str, Any] = field(default_factory=dict)
    config: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    sent_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class NotificationStats:
    """Aggregated counts of log entries over a period."""

    total: int = 0
    by_method: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)
    by_entity_type: dict[str, int] = field(default_factory=dict)


__all__ = [
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
]
