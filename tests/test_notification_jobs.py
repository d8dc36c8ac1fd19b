"""Tests for the scheduled sweeps, the admin report and the scheduler."""

from __future__ import annotations

import time
from datetime import timedelta

import anyio
import pytest

from app.application.use_cases.jobs import (
    JOBS,
    calendar_notification_job,
    cleanup_job,
    folder_inactivity_notification_job,
    judicial_movement_notification_job,
    movement_notification_job,
    notification_jobs,
    run_job,
    task_notification_job,
)
from app.application.use_cases.notifications import email_notifications
from app.domain.entities import Alert
from app.infrastructure.notifications import BrowserChannel, ConnectionRegistry
from app.infrastructure.repositories import AlertRepository, JudicialMovementRepository
from app.infrastructure.scheduler import NotificationScheduler
from app.utils import utcnow
from conftest import FakeConnection, preferences

pytestmark = pytest.mark.anyio


def _channel() -> BrowserChannel:
    return BrowserChannel(ConnectionRegistry(), credential_validator=lambda token, user_id: True)


def _alert(user_id: int, text: str, **fields) -> Alert:
    return Alert(
        id=None,
        user_id=user_id,
        primary_text=text,
        secondary_text="Detalle",
        action_text="Ver",
        avatar_icon="Bell",
        **fields,
    )


async def test_failure_of_one_user_does_not_stop_the_job(
    session, outbox, monkeypatch, make_user, make_movement, today
) -> None:
    broken = make_user("rota@example.com")
    healthy = make_user("sana@example.com")
    for user in (broken, healthy):
        make_movement(user.id, today + timedelta(days=2))

    original = notification_jobs.send_due_date_notifications

    def flaky(session, kind, user_id, **options):
        if user_id == broken.id:
            raise RuntimeError("boom")
        return original(session, kind, user_id, **options)

    monkeypatch.setattr(notification_jobs, "send_due_date_notifications", flaky)

    summary = await movement_notification_job(today=today)

    assert summary["job_name"] == "movement_notification_job"
    assert summary["users_processed"] == 2
    assert summary["users_notified"] == 1
    assert summary["email_notifications_sent"] == 1
    assert summary["successful_processes"] == 1
    assert summary["failed_processes"] == 1
    assert summary["errors"] == [{"user_id": broken.id, "channel": "email", "error": "boom"}]
    assert [message["to"] for message in outbox.sent] == [healthy.email]
    assert summary["finished_at"] is not None


async def test_slow_email_delivery_does_not_block_the_event_loop(
    session, monkeypatch, make_user, make_movement, today
) -> None:
    for index in range(3):
        user = make_user(f"usuario{index}@example.com")
        make_movement(user.id, today + timedelta(days=2))

    def slow_send(subject, html, recipient, text=None):
        time.sleep(0.3)
        return True

    monkeypatch.setattr(email_notifications, "send_email", slow_send)
    gaps: list[float] = []

    async def tick() -> None:
        previous = time.monotonic()
        while True:
            await anyio.sleep(0.05)
            current = time.monotonic()
            gaps.append(current - previous)
            previous = current

    async with anyio.create_task_group() as group:
        group.start_soon(tick)
        summary = await movement_notification_job(today=today)
        group.cancel_scope.cancel()

    assert summary["email_notifications_sent"] == 3
    assert len(gaps) > 5
    assert max(gaps) < 0.2


async def test_job_skips_users_with_the_kind_disabled(
    session, outbox, make_user, make_event, today
) -> None:
    user = make_user(prefs=preferences(user={"calendar": False}))
    make_event(user.id, today + timedelta(days=1))

    summary = await calendar_notification_job(today=today)

    assert summary["users_processed"] == 0
    assert outbox.sent == []


async def test_job_sends_email_and_pushes_browser_alerts(
    session, outbox, make_user, make_task, today
) -> None:
    user = make_user()
    make_task(user.id, today + timedelta(days=3))
    channel = _channel()
    connection = FakeConnection()
    channel.registry.add(user.id, connection)

    summary = await task_notification_job(channel=channel, today=today)

    assert summary["email_notifications_sent"] == 1
    assert summary["browser_alerts_sent"] == 1
    assert summary["notifications_sent"] == 2
    assert summary["users_notified"] == 1
    [pushed] = connection.of_type("new_alert")
    assert pushed["data"]["primary_text"]
    session.expire_all()
    [stored] = AlertRepository(session).list_for_user(user.id)
    assert stored.delivered is True

    repeated = await task_notification_job(channel=channel, today=today)
    assert repeated["notifications_sent"] == 0
    assert len(connection.of_type("new_alert")) == 1


async def test_judicial_job_notifies_pending_movements(
    session, outbox, make_user, make_judicial_movement
) -> None:
    user = make_user()
    by_email = make_judicial_movement(user.id, channels=["email"])
    both = make_judicial_movement(user.id, expediente_id="exp-2")
    make_judicial_movement(user.id, notify_at=utcnow() + timedelta(hours=2))
    channel = _channel()
    connection = FakeConnection()
    channel.registry.add(user.id, connection)

    summary = await judicial_movement_notification_job(channel=channel)

    assert summary["users_processed"] == 1
    assert summary["email_notifications_sent"] == 2
    assert summary["browser_alerts_sent"] == 1
    assert len(outbox.sent) == 1
    assert len(connection.of_type("new_alert")) == 1
    session.expire_all()
    repository = JudicialMovementRepository(session)
    assert repository.get(both).browser_alert_sent is True
    assert repository.get(by_email).browser_alert_sent is False
    assert repository.get(by_email).attributes["notification_status"] == "sent"


async def test_judicial_job_fails_movements_of_missing_users(
    session, outbox, make_judicial_movement
) -> None:
    orphan = make_judicial_movement(777)

    summary = await judicial_movement_notification_job()

    assert summary["users_processed"] == 1
    assert summary["failed_processes"] == 1
    assert summary["errors"][0]["user_id"] == 777
    session.expire_all()
    assert JudicialMovementRepository(session).get(orphan).attributes["notification_status"] == (
        "failed"
    )


async def test_folder_job_reports_to_admin_only_when_something_was_sent(
    session, outbox, admin_email, make_user, make_folder, today
) -> None:
    user = make_user()

    quiet = await folder_inactivity_notification_job(today=today)
    assert quiet["notifications_sent"] == 0
    assert outbox.to(admin_email) == []

    make_folder(user.id, today - timedelta(days=175))
    summary = await folder_inactivity_notification_job(today=today)

    assert summary["email_notifications_sent"] == 1
    [report] = outbox.to(admin_email)
    assert report["subject"] == (
        "Reporte de folder_inactivity_notification_job: 1 notificación(es)"
    )
    assert "Usuarios procesados: 1" in report["text"]


async def test_due_date_job_always_reports_to_admin(
    session, outbox, admin_email, make_user, today
) -> None:
    make_user()

    await calendar_notification_job(today=today)

    [report] = outbox.to(admin_email)
    assert report["subject"] == "Reporte de calendar_notification_job: 0 notificación(es)"


async def test_admin_report_failure_does_not_break_the_job(
    session, outbox, monkeypatch, admin_email, make_user, make_movement, today
) -> None:
    user = make_user()
    make_movement(user.id, today + timedelta(days=1))

    def fail_for_admin(subject, html, recipient, text=None):
        if recipient == admin_email:
            raise RuntimeError("SendGrid caído")
        return True

    monkeypatch.setattr(notification_jobs, "send_email", fail_for_admin)

    summary = await movement_notification_job(today=today)

    assert summary["email_notifications_sent"] == 1


async def test_run_job_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="Job desconocido"):
        await run_job("weekly-digest")


async def test_cleanup_job_removes_expired_rows(
    session, make_user, make_judicial_movement
) -> None:
    user = make_user()
    old = utcnow() - timedelta(days=90)
    alerts = AlertRepository(session)
    alerts.create(_alert(user.id, "Vieja", created_at=old))
    alerts.create(_alert(user.id, "Nueva"))
    make_judicial_movement(user.id, notification_status="sent", created_at=old)
    make_judicial_movement(user.id, notification_status="pending", created_at=old)

    summary = await run_job("cleanup")

    assert summary == {
        "job_name": "cleanup_job",
        "notification_logs_deleted": 0,
        "alerts_deleted": 1,
        "judicial_movements_deleted": 1,
    }
    assert (await cleanup_job())["alerts_deleted"] == 0


async def test_scheduler_registers_every_job() -> None:
    scheduler = NotificationScheduler(JOBS)

    await scheduler.start()
    try:
        assert scheduler.is_running
        assert sorted(scheduler.job_ids()) == sorted(JOBS)
    finally:
        await scheduler.stop()

    assert scheduler.is_running is False
    assert scheduler.job_ids() == []
