"""Browser alert flows: create alerts for due entities and push them live."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from anyio import to_thread
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import (
    ALERT_TYPE_CADUCITY,
    ALERT_TYPE_PRESCRIPTION,
    CHANNEL_BROWSER,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    LOG_STATUS_DELIVERED,
    LOG_STATUS_PENDING,
    OUTCOME_DISABLED,
    OUTCOME_INVALID_CONFIGURATION,
    OUTCOME_NOTHING_DUE,
    OUTCOME_NOTIFIED,
    OUTCOME_USER_NOT_FOUND,
    Alert,
    NotifiableEntity,
    NotificationOutcome,
    NotificationRecord,
    ResolvedSettings,
    SequentialReport,
    User,
)
from app.infrastructure.notifications import BrowserChannel, NotificationRecorder
from app.infrastructure.repositories import AlertRepository, NotifiableRepository, UserRepository
from app.utils import utcnow

from ..notification_logs import log_delivery
from .content import build_alert
from .email_notifications import folder_inactivity_candidates, kind_enabled
from .eligibility import notification_window, resolve_settings, select_eligible

logger = logging.getLogger(__name__)

PUSH_BATCH_SIZE = 10

_FOLDER_ALERT_TEXT = {
    ALERT_TYPE_CADUCITY: "caduca",
    ALERT_TYPE_PRESCRIPTION: "prescribe",
}


async def push_alerts(
    channel: BrowserChannel, user_id: int, alerts: Sequence[Alert]
) -> int:
    """Push ``alerts`` in batches of ``PUSH_BATCH_SIZE``; return how many were delivered."""

    if not alerts or not channel.is_user_connected(user_id):
        return 0
    pushed = 0
    for start in range(0, len(alerts), PUSH_BATCH_SIZE):
        batch = alerts[start : start + PUSH_BATCH_SIZE]
        results = await asyncio.gather(*(channel.push(user_id, alert) for alert in batch))
        pushed += sum(1 for result in results if result)
    return pushed


def _queue_alerts(
    session: Session,
    kind: str,
    entities: Sequence[tuple[NotifiableEntity, Alert]],
    alert_type: str | None,
    settings_to_backfill: ResolvedSettings | None,
) -> tuple[SequentialReport, dict[int, Alert]]:
    planned = {entity.id: alert for entity, alert in entities}
    alerts = AlertRepository(session)
    created: dict[int, Alert] = {}

    def _queue_alert(entity_id: int) -> Alert:
        alert = alerts.create(planned[entity_id])
        created[entity_id] = alert
        return alert

    report = NotificationRecorder(session).record_sequential(
        kind,
        list(planned),
        NotificationRecord(
            date=utcnow(),
            channel=CHANNEL_BROWSER,
            success=True,
            details="Alerta de navegador creada",
            alert_type=alert_type,
        ),
        before_record=_queue_alert,
        settings_to_backfill=settings_to_backfill,
    )

    recorded = set(report.recorded_ids)
    for entity_id, alert in created.items():
        if entity_id not in recorded and alert.id is not None:
            alerts.delete(alert.id)
    return report, created


def _log_alerts(
    session: Session,
    user_id: int,
    entities: dict[int, NotifiableEntity],
    queued: Sequence[tuple[int, Alert]],
    alert_type: str | None,
) -> None:
    for entity_id, alert in queued:
        log_delivery(
            session,
            user_id=user_id,
            method=CHANNEL_BROWSER,
            status=LOG_STATUS_DELIVERED if alert.delivered else LOG_STATUS_PENDING,
            entity=entities[entity_id],
            subject=alert.primary_text,
            message=alert.secondary_text,
            metadata={"alert_id": alert.id, "alert_type": alert_type},
        )


async def create_and_push_alerts(
    session: Session,
    channel: BrowserChannel,
    user: User,
    kind: str,
    entities: Sequence[tuple[NotifiableEntity, Alert]],
    *,
    alert_type: str | None = None,
    settings_to_backfill: ResolvedSettings | None = None,
) -> NotificationOutcome:
    """Queue one alert per entity, record it, then push the recorded ones.

    Alerts created for entities that another caller recorded first are
    removed again so the user never sees them twice. Database work runs in a
    worker thread; creation and push happen under the user's delivery lock so
    a catch-up delivery cannot send the same alert in between.
    """

    async with channel.user_lock(user.id):
        report, created = await to_thread.run_sync(
            _queue_alerts, session, kind, entities, alert_type, settings_to_backfill
        )
        queued = [(entity_id, created[entity_id]) for entity_id in report.recorded_ids]
        pushed = await push_alerts(channel, user.id, [alert for _, alert in queued])

    await to_thread.run_sync(
        _log_alerts,
        session,
        user.id,
        {entity.id: entity for entity, _ in entities},
        queued,
        alert_type,
    )

    logger.info(
        "Browser alerts for user %s (%s): %s created, %s pushed, %s skipped, %s failed",
        user.id,
        kind,
        report.successful,
        pushed,
        report.skipped,
        report.failed,
    )
    if not report.successful:
        return NotificationOutcome(
            status=OUTCOME_NOTHING_DUE,
            message="No se crearon alertas nuevas",
            details=report.to_dict(),
        )
    return NotificationOutcome(
        status=OUTCOME_NOTIFIED,
        message=f"{report.successful} alerta(s) creada(s), {pushed} entregada(s)",
        count=report.successful,
        entity_ids=list(report.recorded_ids),
        details={**report.to_dict(), "pushed": pushed},
    )


@dataclass
class _AlertPlan:
    """Alerts prepared for one user, grouped by alert type."""

    user: User | None = None
    rejection: NotificationOutcome | None = None
    settings: ResolvedSettings | None = None
    batches: list[tuple[str | None, list[tuple[NotifiableEntity, Alert]]]] = field(
        default_factory=list
    )


def _check_user(
    session: Session, user_id: int, kind: str, days: int | None
) -> tuple[User | None, NotificationOutcome | None]:
    user = UserRepository(session).get(user_id)
    if user is None:
        return None, NotificationOutcome(
            status=OUTCOME_USER_NOT_FOUND, message=f"Usuario {user_id} no encontrado"
        )
    if days is not None and days < 1:
        return user, NotificationOutcome(
            status=OUTCOME_INVALID_CONFIGURATION,
            message=f"Los días de anticipación deben ser al menos 1 (recibido {days})",
        )
    if not user.preferences.browser_enabled or not kind_enabled(user.preferences, kind):
        return user, NotificationOutcome(
            status=OUTCOME_DISABLED, message="Alertas de navegador deshabilitadas"
        )
    return user, None


def _browser_settings(kind: str, user: User, days: int | None) -> ResolvedSettings:
    settings = resolve_settings(kind, None, user.preferences, days)
    limit = get_settings().browser_max_days_in_advance
    if settings.days_in_advance > limit:
        settings = ResolvedSettings(
            notify_once_only=settings.notify_once_only, days_in_advance=limit
        )
    return settings


def _plan_due_alerts(
    session: Session,
    kind: str,
    user_id: int,
    days: int | None,
    force_daily: bool,
    today: date | datetime,
) -> _AlertPlan:
    user, rejection = _check_user(session, user_id, kind, days)
    if rejection is not None:
        return _AlertPlan(user=user, rejection=rejection)

    settings = _browser_settings(kind, user, days)
    start, end = notification_window(today, get_settings().browser_max_days_in_advance)
    candidates = NotifiableRepository(session, kind).list_due_for_user(
        user.id,
        start=start,
        end=end,
        exclude_browser_sent=settings.notify_once_only and not force_daily,
    )
    selected = select_eligible(candidates, settings, today, force_daily, channel=CHANNEL_BROWSER)
    plan = _AlertPlan(user=user, settings=settings)
    if selected:
        plan.batches.append((None, [(entity, build_alert(entity)) for entity, _ in selected]))
    return plan


def _plan_folder_alerts(
    session: Session,
    user_id: int,
    days: int | None,
    force_daily: bool,
    today: date | datetime,
) -> _AlertPlan:
    user, rejection = _check_user(session, user_id, ENTITY_FOLDER, days)
    if rejection is not None:
        return _AlertPlan(user=user, rejection=rejection)

    settings = _browser_settings(ENTITY_FOLDER, user, days)
    inactivity = user.preferences.inactivity_settings
    folders = NotifiableRepository(session, ENTITY_FOLDER).list_active_folders(user.id)
    plan = _AlertPlan(user=user, settings=settings)
    for alert_type, threshold in (
        (ALERT_TYPE_CADUCITY, inactivity.caducity_days),
        (ALERT_TYPE_PRESCRIPTION, inactivity.prescription_days),
    ):
        due = folder_inactivity_candidates(
            folders, settings, threshold, alert_type, today, force_daily, channel=CHANNEL_BROWSER
        )
        if not due:
            continue
        plan.batches.append(
            (
                alert_type,
                [
                    (
                        folder,
                        build_alert(
                            folder,
                            secondary_text=(
                                f"{folder.title} {_FOLDER_ALERT_TEXT[alert_type]} "
                                f"en {remaining} días"
                            ),
                        ),
                    )
                    for folder, remaining in due
                ],
            )
        )
    return plan


async def send_browser_alerts(
    session: Session,
    channel: BrowserChannel,
    kind: str,
    user_id: int,
    *,
    days: int | None = None,
    force_daily: bool = False,
    today: date | datetime | None = None,
) -> NotificationOutcome:
    """Create browser alerts for the events, tasks or movements due soon."""

    if kind in (ENTITY_FOLDER, ENTITY_JUDICIAL_MOVEMENT):
        raise ValueError(f"Entities of kind {kind} have no due date alerts")

    plan = await to_thread.run_sync(
        _plan_due_alerts, session, kind, user_id, days, force_daily, today or utcnow()
    )
    if plan.rejection is not None:
        return plan.rejection
    if not plan.batches:
        return NotificationOutcome(
            status=OUTCOME_NOTHING_DUE, message="No hay elementos para alertar"
        )

    [(_, planned)] = plan.batches
    return await create_and_push_alerts(
        session, channel, plan.user, kind, planned, settings_to_backfill=plan.settings
    )


async def send_folder_browser_alerts(
    session: Session,
    channel: BrowserChannel,
    user_id: int,
    *,
    days: int | None = None,
    force_daily: bool = False,
    today: date | datetime | None = None,
) -> NotificationOutcome:
    """Create browser alerts for folders close to caducity or prescription."""

    plan = await to_thread.run_sync(
        _plan_folder_alerts, session, user_id, days, force_daily, today or utcnow()
    )
    if plan.rejection is not None:
        return plan.rejection

    count = 0
    entity_ids: list[int] = []
    details: dict[str, dict] = {}
    for alert_type, planned in plan.batches:
        outcome = await create_and_push_alerts(
            session,
            channel,
            plan.user,
            ENTITY_FOLDER,
            planned,
            alert_type=alert_type,
            settings_to_backfill=plan.settings,
        )
        details[alert_type] = outcome.to_dict()
        count += outcome.count
        entity_ids.extend(outcome.entity_ids)

    if not count:
        return NotificationOutcome(
            status=OUTCOME_NOTHING_DUE, message="No hay carpetas para alertar", details=details
        )
    return NotificationOutcome(
        status=OUTCOME_NOTIFIED,
        message=f"{count} alerta(s) de inactividad creada(s)",
        count=count,
        entity_ids=sorted(set(entity_ids)),
        details=details,
    )


async def send_judicial_browser_alerts(
    session: Session,
    channel: BrowserChannel,
    user: User,
    movements: Sequence[NotifiableEntity],
) -> NotificationOutcome:
    """Create and push one alert per judicial movement."""

    if not user.preferences.browser_enabled or not user.preferences.judicial:
        return NotificationOutcome(
            status=OUTCOME_DISABLED, message="Alertas de navegador deshabilitadas"
        )
    planned = []
    for movement in movements:
        expediente = movement.attributes.get("expediente") or {}
        detail = (movement.attributes.get("movement") or {}).get("type") or "Movimiento"
        planned.append(
            (
                movement,
                build_alert(
                    movement,
                    secondary_text=(
                        f"Expediente {expediente.get('number') or '-'}/"
                        f"{expediente.get('year') or '-'}: {detail}"
                    ),
                ),
            )
        )
    return await create_and_push_alerts(
        session, channel, user, ENTITY_JUDICIAL_MOVEMENT, planned
    )


__all__ = [
    "PUSH_BATCH_SIZE",
    "create_and_push_alerts",
    "push_alerts",
    "send_browser_alerts",
    "send_folder_browser_alerts",
    "send_judicial_browser_alerts",
]
