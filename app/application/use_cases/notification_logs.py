"""Use cases for writing and querying the notification audit trail."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import (
    LOG_STATUS_FAILED,
    NotifiableEntity,
    NotificationLog,
    NotificationStats,
)
from app.infrastructure.repositories import NotificationLogRepository
from app.utils import utcnow

logger = logging.getLogger(__name__)


def entity_snapshot(entity: NotifiableEntity) -> dict[str, Any]:
    """Return a JSON-safe copy of the fields worth keeping with a log entry."""

    return jsonable_encoder(
        {
            "id": entity.id,
            "kind": entity.kind,
            "title": entity.title,
            "description": entity.description,
            "trigger_date": entity.trigger_date,
            "attributes": entity.attributes,
        }
    )


def log_delivery(
    session: Session,
    *,
    user_id: int,
    method: str,
    status: str,
    entity: NotifiableEntity | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    subject: str | None = None,
    message: str | None = None,
    recipient: str | None = None,
    error: str | None = None,
    config: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> NotificationLog | None:
    """Append one audit entry describing a delivery attempt.

    The history stored on the entity is the source of truth for eligibility;
    a failure to write the audit entry is logged and ``None`` is returned.
    """

    now = utcnow()
    entry = NotificationLog(
        id=None,
        user_id=user_id,
        entity_type=entity.kind if entity is not None else (entity_type or "custom"),
        entity_id=entity.id if entity is not None else entity_id,
        method=method,
        status=status,
        entity_snapshot=entity_snapshot(entity) if entity is not None else {},
        content={"subject": subject, "message": message},
        delivery={"attempts": 1, "last_error": error, "recipient": recipient},
        config=jsonable_encoder(config or {}),
        metadata=jsonable_encoder(metadata or {}),
        sent_at=None if status == LOG_STATUS_FAILED else now,
        expires_at=now + timedelta(days=get_settings().notification_log_retention_days),
        created_at=now,
    )
    try:
        return NotificationLogRepository(session).create(entry)
    except SQLAlchemyError:
        session.rollback()
        logger.exception(
            "Could not write notification log for %s %s", entry.entity_type, entry.entity_id
        )
        return None


def list_notification_logs(
    session: Session,
    *,
    user_id: int | None = None,
    entity_type: str | None = None,
    method: str | None = None,
    status: str | None = None,
    limit: int = 100,
) -> list[NotificationLog]:
    """Return audit entries, newest first."""

    repository = NotificationLogRepository(session)
    return repository.list(
        user_id=user_id,
        entity_type=entity_type,
        method=method,
        status=status,
        limit=limit,
    )


def get_notification_log(session: Session, entry_id: int) -> NotificationLog:
    entry = NotificationLogRepository(session).get(entry_id)
    if entry is None:
        raise ValueError("Registro de notificación no encontrado")
    return entry


def get_notification_stats(
    session: Session,
    *,
    user_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> NotificationStats:
    return NotificationLogRepository(session).get_stats(user_id=user_id, start=start, end=end)


def cleanup_notification_logs(session: Session, *, older_than_days: int | None = None) -> int:
    """Delete audit entries older than the retention period."""

    days = older_than_days or get_settings().notification_log_retention_days
    deleted = NotificationLogRepository(session).delete_created_before(
        utcnow() - timedelta(days=days)
    )
    logger.info("Deleted %s notification log entries older than %s days", deleted, days)
    return deleted


__all__ = [
    "cleanup_notification_logs",
    "entity_snapshot",
    "get_notification_log",
    "get_notification_stats",
    "list_notification_logs",
    "log_delivery",
]
