"""Tests for the notification audit trail."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.application.use_cases.notification_logs import (
    cleanup_notification_logs,
    get_notification_log,
    get_notification_stats,
    list_notification_logs,
    log_delivery,
)
from app.infrastructure.models import NotificationLogModel
from app.utils import utcnow


@pytest.fixture
def user(make_user):
    return make_user()


def test_log_delivery_without_entity(session, user) -> None:
    entry = log_delivery(
        session,
        user_id=user.id,
        method="webhook",
        status="failed",
        entity_type="custom",
        entity_id=12,
        subject="Aviso",
        error="timeout",
        metadata={"attempt": 1},
    )

    stored = get_notification_log(session, entry.id)
    assert stored.entity_type == "custom"
    assert stored.entity_id == 12
    assert stored.content == {"subject": "Aviso", "message": None}
    assert stored.delivery["last_error"] == "timeout"
    assert stored.metadata == {"attempt": 1}
    assert stored.sent_at is None


def test_missing_entry_raises(session) -> None:
    with pytest.raises(ValueError, match="no encontrado"):
        get_notification_log(session, 404)


def test_list_filters_and_orders_newest_first(session, user, make_user) -> None:
    other = make_user("otro@example.com")
    log_delivery(session, user_id=user.id, method="email", status="sent", entity_type="task")
    log_delivery(session, user_id=user.id, method="browser", status="delivered", entity_type="task")
    log_delivery(session, user_id=other.id, method="email", status="failed", entity_type="event")

    mine = list_notification_logs(session, user_id=user.id)
    failed = list_notification_logs(session, status="failed")
    limited = list_notification_logs(session, limit=1)

    assert [entry.method for entry in mine] == ["browser", "email"]
    assert [entry.user_id for entry in failed] == [other.id]
    assert len(limited) == 1


def test_stats_group_by_method_status_and_type(session, user) -> None:
    log_delivery(session, user_id=user.id, method="email", status="sent", entity_type="task")
    log_delivery(session, user_id=user.id, method="email", status="failed", entity_type="event")
    log_delivery(session, user_id=user.id, method="browser", status="pending", entity_type="task")

    stats = get_notification_stats(session, user_id=user.id)
    future = get_notification_stats(session, start=utcnow() + timedelta(days=1))

    assert stats.total == 3
    assert stats.by_method == {"email": 2, "browser": 1}
    assert stats.by_status == {"sent": 1, "failed": 1, "pending": 1}
    assert stats.by_entity_type == {"task": 2, "event": 1}
    assert future.total == 0


def test_cleanup_removes_entries_past_retention(session, user) -> None:
    old = log_delivery(session, user_id=user.id, method="email", status="sent")
    recent = log_delivery(session, user_id=user.id, method="email", status="sent")
    session.query(NotificationLogModel).filter(NotificationLogModel.id == old.id).update(
        {NotificationLogModel.created_at: utcnow() - timedelta(days=45)},
        synchronize_session=False,
    )
    session.commit()

    assert cleanup_notification_logs(session) == 1
    assert [entry.id for entry in list_notification_logs(session)] == [recent.id]
