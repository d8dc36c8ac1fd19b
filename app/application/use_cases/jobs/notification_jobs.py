"""Sweeps that notify every user of one notification kind."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import partial
from html import escape
from typing import Any

from anyio import to_thread
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import (
    CHANNEL_BROWSER,
    ENTITY_EVENT,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    OUTCOME_DELIVERY_FAILED,
    OUTCOME_USER_NOT_FOUND,
    NotificationOutcome,
)
from app.infrastructure.database import SessionLocal
from app.infrastructure.email import send_email
from app.infrastructure.notifications import (
    CATEGORY_ADMINISTRATION,
    TEMPLATE_NOTIFICATIONS_REPORT,
    BrowserChannel,
    TemplateRenderer,
)
from app.infrastructure.repositories import JudicialMovementRepository, UserRepository
from app.utils import now_in_app_timezone, utcnow

from ..notifications import (
    kind_enabled,
    send_browser_alerts,
    send_due_date_notifications,
    send_folder_browser_alerts,
    send_folder_inactivity_notifications,
    send_judicial_browser_alerts,
    send_judicial_movement_notifications,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass
class JobSummary:
    """Counters collected while a job walks through its users."""

    job_name: str
    users_processed: int = 0
    users_notified: int = 0
    email_notifications_sent: int = 0
    browser_alerts_sent: int = 0
    successful_processes: int = 0
    failed_processes: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None

    @property
    def notifications_sent(self) -> int:
        return self.email_notifications_sent + self.browser_alerts_sent

    def add_error(self, user_id: int, channel: str, error: str) -> None:
        self.errors.append({"user_id": user_id, "channel": channel, "error": error})

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_name": self.job_name,
            "users_processed": self.users_processed,
            "users_notified": self.users_notified,
            "notifications_sent": self.notifications_sent,
            "email_notifications_sent": self.email_notifications_sent,
            "browser_alerts_sent": self.browser_alerts_sent,
            "successful_processes": self.successful_processes,
            "failed_processes": self.failed_processes,
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class _UserRun:
    """Track the result of both channels for a single user."""

    def __init__(self, summary: JobSummary, user_id: int) -> None:
        self.summary = summary
        self.user_id = user_id
        self.notified = False
        self.failed = False

    def account(self, channel: str, outcome: NotificationOutcome) -> None:
        if outcome.notified:
            self.notified = True
            if channel == CHANNEL_BROWSER:
                self.summary.browser_alerts_sent += outcome.count
            else:
                self.summary.email_notifications_sent += outcome.count
        elif outcome.status in (OUTCOME_DELIVERY_FAILED, OUTCOME_USER_NOT_FOUND):
            self.fail(channel, outcome.message)

    def fail(self, channel: str, error: str) -> None:
        self.failed = True
        self.summary.add_error(self.user_id, channel, error)

    def finish(self) -> None:
        if self.failed:
            self.summary.failed_processes += 1
        else:
            self.summary.successful_processes += 1
        if self.notified:
            self.summary.users_notified += 1


async def _run_channel(
    session: Session,
    run: _UserRun,
    channel: str,
    step: Callable[..., Any],
    *args: Any,
    **kwargs: Any,
) -> NotificationOutcome | None:
    """Run one channel flow for one user; synchronous flows run in a worker thread."""

    try:
        if inspect.iscoroutinefunction(step):
            outcome = await step(*args, **kwargs)
        else:
            outcome = await to_thread.run_sync(partial(step, *args, **kwargs))
    except Exception as exc:
        await to_thread.run_sync(session.rollback)
        logger.exception("%s channel failed for user %s", channel, run.user_id)
        run.fail(channel, str(exc))
        return None
    run.account(channel, outcome)
    return outcome


def _finish(summary: JobSummary) -> JobSummary:
    summary.finished_at = utcnow()
    logger.info(
        "%s finished: %s users processed, %s notified, %s notifications sent, %s failed",
        summary.job_name,
        summary.users_processed,
        summary.users_notified,
        summary.notifications_sent,
        summary.failed_processes,
    )
    return summary


def send_admin_report(session: Session, summary: JobSummary) -> bool:
    """Email the job summary to the administrator, when one is configured."""

    admin_email = get_settings().admin_email
    if not admin_email:
        return False

    counters = [
        ("Usuarios procesados", summary.users_processed),
        ("Usuarios notificados", summary.users_notified),
        ("Notificaciones enviadas", summary.notifications_sent),
        ("Emails", summary.email_notifications_sent),
        ("Alertas de navegador", summary.browser_alerts_sent),
        ("Procesos exitosos", summary.successful_processes),
        ("Procesos fallidos", summary.failed_processes),
    ]
    summary_html = "<ul>" + "".join(
        f"<li><strong>{escape(label)}:</strong> {value}</li>" for label, value in counters
    ) + "</ul>"
    summary_text = "\n".join(f"{label}: {value}" for label, value in counters)
    try:
        rendered = TemplateRenderer(session).render(
            CATEGORY_ADMINISTRATION,
            TEMPLATE_NOTIFICATIONS_REPORT,
            {
                "jobName": summary.job_name,
                "executedAt": now_in_app_timezone().strftime("%d/%m/%Y %H:%M"),
                "notificationsSent": summary.notifications_sent,
                "summaryHtml": summary_html,
                "summaryText": summary_text,
            },
        )
        return send_email(rendered.subject, rendered.html, admin_email, rendered.text)
    except Exception:
        logger.exception("Could not send the %s report to the administrator", summary.job_name)
        return False


async def _due_date_job(
    job_name: str,
    kind: str,
    *,
    channel: BrowserChannel | None,
    session_factory: SessionFactory,
    today: date | datetime | None,
) -> dict[str, Any]:
    summary = JobSummary(job_name)
    session = session_factory()
    try:
        users = await to_thread.run_sync(UserRepository(session).list_active)
        for user in users:
            if not kind_enabled(user.preferences, kind):
                continue
            summary.users_processed += 1
            run = _UserRun(summary, user.id)
            if user.preferences.email_enabled:
                await _run_channel(
                    session,
                    run,
                    "email",
                    send_due_date_notifications,
                    session,
                    kind,
                    user.id,
                    today=today,
                )
            if channel is not None and user.preferences.browser_enabled:
                await _run_channel(
                    session,
                    run,
                    CHANNEL_BROWSER,
                    send_browser_alerts,
                    session,
                    channel,
                    kind,
                    user.id,
                    today=today,
                )
            run.finish()
        _finish(summary)
        await to_thread.run_sync(send_admin_report, session, summary)
    finally:
        session.close()
    return summary.to_dict()


async def calendar_notification_job(
    *,
    channel: BrowserChannel | None = None,
    session_factory: SessionFactory = SessionLocal,
    today: date | datetime | None = None,
) -> dict[str, Any]:
    return await _due_date_job(
        "calendar_notification_job",
        ENTITY_EVENT,
        channel=channel,
        session_factory=session_factory,
        today=today,
    )


async def task_notification_job(
    *,
    channel: BrowserChannel | None = None,
    session_factory: SessionFactory = SessionLocal,
    today: date | datetime | None = None,
) -> dict[str, Any]:
    return await _due_date_job(
        "task_notification_job",
        ENTITY_TASK,
        channel=channel,
        session_factory=session_factory,
        today=today,
    )


async def movement_notification_job(
    *,
    channel: BrowserChannel | None = None,
    session_factory: SessionFactory = SessionLocal,
    today: date | datetime | None = None,
) -> dict[str, Any]:
    return await _due_date_job(
        "movement_notification_job",
        ENTITY_MOVEMENT,
        channel=channel,
        session_factory=session_factory,
        today=today,
    )


async def judicial_movement_notification_job(
    *,
    channel: BrowserChannel | None = None,
    session_factory: SessionFactory = SessionLocal,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Notify every user with pending judicial movements whose time has come."""

    summary = JobSummary("judicial_movement_notification_job")
    now = now or utcnow()
    session = session_factory()
    try:
        repository = JudicialMovementRepository(session)
        user_ids = await to_thread.run_sync(repository.pending_user_ids, now)
        logger.info("Found %s users with pending judicial movements", len(user_ids))
        for user_id in user_ids:
            summary.users_processed += 1
            run = _UserRun(summary, user_id)
            movements = await to_thread.run_sync(repository.list_pending_for_user, user_id, now)
            outcome = await _run_channel(
                session,
                run,
                "email",
                send_judicial_movement_notifications,
                session,
                user_id,
                now=now,
            )
            user = await to_thread.run_sync(UserRepository(session).get, user_id)
            if channel is not None and user is not None and outcome is not None:
                browser_movements = [
                    movement
                    for movement in movements
                    if not movement.browser_alert_sent
                    and CHANNEL_BROWSER in movement.attributes.get("channels", [])
                ]
                if browser_movements:
                    await _run_channel(
                        session,
                        run,
                        CHANNEL_BROWSER,
                        send_judicial_browser_alerts,
                        session,
                        channel,
                        user,
                        browser_movements,
                    )
            run.finish()
        _finish(summary)
        await to_thread.run_sync(send_admin_report, session, summary)
    finally:
        session.close()
    return summary.to_dict()


async def folder_inactivity_notification_job(
    *,
    channel: BrowserChannel | None = None,
    session_factory: SessionFactory = SessionLocal,
    today: date | datetime | None = None,
) -> dict[str, Any]:
    """Warn every user about folders approaching caducity or prescription."""

    summary = JobSummary("folder_inactivity_notification_job")
    session = session_factory()
    try:
        users = await to_thread.run_sync(UserRepository(session).list_active)
        for user in users:
            if not user.preferences.inactivity:
                continue
            summary.users_processed += 1
            run = _UserRun(summary, user.id)
            if user.preferences.email_enabled:
                await _run_channel(
                    session,
                    run,
                    "email",
                    send_folder_inactivity_notifications,
                    session,
                    user.id,
                    today=today,
                )
            if channel is not None and user.preferences.browser_enabled:
                await _run_channel(
                    session,
                    run,
                    CHANNEL_BROWSER,
                    send_folder_browser_alerts,
                    session,
                    channel,
                    user.id,
                    today=today,
                )
            run.finish()
        _finish(summary)
        if summary.notifications_sent > 0:
            await to_thread.run_sync(send_admin_report, session, summary)
    finally:
        session.close()
    return summary.to_dict()


__all__ = [
    "JobSummary",
    "calendar_notification_job",
    "folder_inactivity_notification_job",
    "judicial_movement_notification_job",
    "movement_notification_job",
    "send_admin_report",
    "task_notification_job",
]
