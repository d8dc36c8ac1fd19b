"""Use cases for the browser alerts of the authenticated user."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import Alert
from app.infrastructure.repositories import AlertRepository
from app.utils import utcnow


def list_user_alerts(
    session: Session, user_id: int, *, unread_only: bool = False, limit: int = 50
) -> list[Alert]:
    """Return the most recent alerts of ``user_id``."""

    repository = AlertRepository(session)
    return list(repository.list_for_user(user_id, unread_only=unread_only, limit=limit))


def mark_alerts_as_read(session: Session, user_id: int, alert_ids: Iterable[int]) -> int:
    return AlertRepository(session).mark_as_read(alert_ids, user_id=user_id)


def delete_alert(session: Session, user_id: int, alert_id: int) -> None:
    """Remove an alert of ``user_id`` or raise an error if it does not exist."""

    if not AlertRepository(session).delete(alert_id, user_id=user_id):
        raise ValueError("Alerta no encontrada")


def cleanup_alerts(session: Session, *, older_than_days: int | None = None) -> int:
    days = older_than_days or get_settings().alert_retention_days
    return AlertRepository(session).delete_created_before(utcnow() - timedelta(days=days))


__all__ = ["cleanup_alerts", "delete_alert", "list_user_alerts", "mark_alerts_as_read"]
