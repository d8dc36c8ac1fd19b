"""Email notification flows for one user and one notification kind."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import (
    ALERT_TYPE_CADUCITY,
    ALERT_TYPE_PRESCRIPTION,
    CHANNEL_EMAIL,
    CHANNEL_SYSTEM,
    ENTITY_EVENT,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    JUDICIAL_STATUS_FAILED,
    JUDICIAL_STATUS_SENT,
    LOG_STATUS_FAILED,
    LOG_STATUS_SENT,
    OUTCOME_DELIVERY_FAILED,
    OUTCOME_DISABLED,
    OUTCOME_INVALID_CONFIGURATION,
    OUTCOME_NOTHING_DUE,
    OUTCOME_NOTIFIED,
    OUTCOME_USER_NOT_FOUND,
    NotifiableEntity,
    NotificationOutcome,
    NotificationRecord,
    RenderedTemplate,
    ResolvedSettings,
    User,
    UserNotificationPreferences,
)
from app.infrastructure.email import send_email
from app.infrastructure.notifications import (
    CATEGORY_NOTIFICATIONS,
    NotificationRecorder,
    TemplateRenderer,
)
from app.infrastructure.repositories import (
    JudicialMovementRepository,
    NotifiableRepository,
    UserRepository,
)
from app.utils import utcnow

from ..notification_logs import log_delivery
from .content import (
    TEMPLATE_NAMES,
    build_folder_variables,
    build_item_variables,
    build_judicial_variables,
    folder_template_name,
)
from .eligibility import (
    MalformedEntityError,
    evaluate_inactivity,
    notification_window,
    resolve_settings,
    select_eligible,
)

logger = logging.getLogger(__name__)

_KIND_LABELS = {
    ENTITY_EVENT: "eventos",
    ENTITY_TASK: "tareas",
    ENTITY_MOVEMENT: "movimientos",
    ENTITY_JUDICIAL_MOVEMENT: "movimientos judiciales",
    ENTITY_FOLDER: "carpetas",
}


def kind_enabled(preferences: UserNotificationPreferences, kind: str) -> bool:
    """Return the user's switch for ``kind`` notifications."""

    if kind == ENTITY_EVENT:
        return preferences.calendar
    if kind in (ENTITY_TASK, ENTITY_MOVEMENT):
        return preferences.expiration
    if kind == ENTITY_FOLDER:
        return preferences.inactivity
    if kind == ENTITY_JUDICIAL_MOVEMENT:
        return preferences.judicial
    raise ValueError(f"Unsupported entity kind: {kind}")


def lookahead_days(settings: ResolvedSettings) -> int:
    """Days of trigger dates to load so entity overrides can still apply."""

    return max(settings.days_in_advance, get_settings().browser_max_days_in_advance)


def _user_not_found(user_id: int) -> NotificationOutcome:
    return NotificationOutcome(
        status=OUTCOME_USER_NOT_FOUND, message=f"Usuario {user_id} no encontrado"
    )


def _invalid_days(days: int) -> NotificationOutcome:
    return NotificationOutcome(
        status=OUTCOME_INVALID_CONFIGURATION,
        message=f"Los días de anticipación deben ser al menos 1 (recibido {days})",
    )


def deliver_email(
    session: Session,
    user: User,
    kind: str,
    entities: Sequence[NotifiableEntity],
    rendered: RenderedTemplate,
    *,
    alert_type: str | None = None,
    settings_to_backfill: ResolvedSettings | None = None,
) -> NotificationOutcome:
    """Send one email covering ``entities`` and record the result on each of them.

    Transport errors are not raised: they are stored as a failed record so the
    next sweep finds the entities still pending.
    """

    error: str | None = None
    try:
        delivered = send_email(rendered.subject, rendered.html, user.email, rendered.text)
        if not delivered:
            error = "El servicio de email rechazó el envío"
    except Exception as exc:
        logger.exception("Email delivery to %s failed", user.email)
        delivered = False
        error = str(exc) or exc.__class__.__name__

    label = _KIND_LABELS.get(kind, kind)
    details = (
        f"Notificación de {label} enviada a {user.email}"
        if delivered
        else f"Error al enviar notificación de {label}: {error}"
    )
    record = NotificationRecord(
        date=utcnow(),
        channel=CHANNEL_EMAIL,
        success=delivered,
        details=details,
        alert_type=alert_type,
    )
    result = NotificationRecorder(session).record(
        kind,
        [entity.id for entity in entities],
        record,
        settings_to_backfill=settings_to_backfill,
    )

    by_id = {entity.id: entity for entity in entities}
    for entity_id in result.recorded_ids:
        log_delivery(
            session,
            user_id=user.id,
            method=CHANNEL_EMAIL,
            status=LOG_STATUS_SENT if delivered else LOG_STATUS_FAILED,
            entity=by_id.get(entity_id),
            subject=rendered.subject,
            message=rendered.text,
            recipient=user.email,
            error=error,
            metadata={
                "notification_id": result.notification_ids.get(entity_id),
                "alert_type": alert_type,
            },
        )

    outcome_details = {
        "recorded": result.modified,
        "skipped": result.skipped,
        "total": result.total,
    }
    if not delivered:
        return NotificationOutcome(
            status=OUTCOME_DELIVERY_FAILED,
            message=details,
            entity_ids=list(result.recorded_ids),
            details={**outcome_details, "error": error},
        )

    logger.info(
        "Email with %s %s sent to user %s (%s recorded, %s skipped)",
        len(entities),
        label,
        user.id,
        result.modified,
        result.skipped,
    )
    return NotificationOutcome(
        status=OUTCOME_NOTIFIED,
        message=details,
        count=len(entities),
        entity_ids=[entity.id for entity in entities],
        details=outcome_details,
    )


def send_due_date_notifications(
    session: Session,
    kind: str,
    user_id: int,
    *,
    days: int | None = None,
    force_daily: bool = False,
    today: date | datetime | None = None,
) -> NotificationOutcome:
    """Email ``user_id`` about the events, tasks or movements due soon."""

    if kind not in TEMPLATE_NAMES or kind == ENTITY_JUDICIAL_MOVEMENT:
        raise ValueError(f"Entities of kind {kind} have no due date notifications")

    user = UserRepository(session).get(user_id)
    if user is None:
        return _user_not_found(user_id)
    if days is not None and days < 1:
        return _invalid_days(days)

    preferences = user.preferences
    if not preferences.email_enabled or not kind_enabled(preferences, kind):
        return NotificationOutcome(
            status=OUTCOME_DISABLED,
            message=f"Notificaciones de {_KIND_LABELS[kind]} por email deshabilitadas",
        )

    today = today or utcnow()
    settings = resolve_settings(kind, None, preferences, days)
    start, end = notification_window(today, lookahead_days(settings))
    candidates = NotifiableRepository(session, kind).list_due_for_user(
        user.id, start=start, end=end
    )
    selected = [
        entity
        for entity, _ in select_eligible(
            candidates, settings, today, force_daily, channel=CHANNEL_EMAIL
        )
    ]
    if not selected:
        return NotificationOutcome(
            status=OUTCOME_NOTHING_DUE,
            message=f"No hay {_KIND_LABELS[kind]} para notificar",
        )

    rendered = TemplateRenderer(session).render(
        CATEGORY_NOTIFICATIONS,
        TEMPLATE_NAMES[kind],
        build_item_variables(kind, user, selected, settings.days_in_advance, today),
    )
    return deliver_email(
        session, user, kind, selected, rendered, settings_to_backfill=settings
    )


def send_calendar_notifications(session: Session, user_id: int, **options) -> NotificationOutcome:
    return send_due_date_notifications(session, ENTITY_EVENT, user_id, **options)


def send_task_notifications(session: Session, user_id: int, **options) -> NotificationOutcome:
    return send_due_date_notifications(session, ENTITY_TASK, user_id, **options)


def send_movement_notifications(session: Session, user_id: int, **options) -> NotificationOutcome:
    return send_due_date_notifications(session, ENTITY_MOVEMENT, user_id, **options)


def folder_inactivity_candidates(
    folders: Sequence[NotifiableEntity],
    settings: ResolvedSettings,
    threshold_days: int,
    alert_type: str,
    today: date | datetime,
    force_daily: bool = False,
    *,
    channel: str = CHANNEL_EMAIL,
) -> list[tuple[NotifiableEntity, int]]:
    """Return the folders due for ``alert_type`` with their days remaining."""

    due: list[tuple[NotifiableEntity, int]] = []
    for folder in folders:
        try:
            result = evaluate_inactivity(
                folder,
                settings,
                threshold_days,
                alert_type,
                today,
                force_daily,
                channel=channel,
            )
        except MalformedEntityError:
            logger.warning("Skipping folder %s without activity dates", folder.id)
            continue
        if result.should_notify:
            due.append((folder, result.days_remaining))
    return due


def send_folder_inactivity_notifications(
    session: Session,
    user_id: int,
    *,
    days: int | None = None,
    force_daily: bool = False,
    today: date | datetime | None = None,
) -> NotificationOutcome:
    """Email ``user_id`` about folders close to caducity or prescription.

    One email is sent per alert type; the outcome aggregates both.
    """

    user = UserRepository(session).get(user_id)
    if user is None:
        return _user_not_found(user_id)
    if days is not None and days < 1:
        return _invalid_days(days)

    preferences = user.preferences
    if not preferences.email_enabled or not preferences.inactivity:
        return NotificationOutcome(
            status=OUTCOME_DISABLED,
            message="Notificaciones de inactividad por email deshabilitadas",
        )

    today = today or utcnow()
    settings = resolve_settings(ENTITY_FOLDER, None, preferences, days)
    inactivity = preferences.inactivity_settings
    folders = NotifiableRepository(session, ENTITY_FOLDER).list_active_folders(user.id)

    outcomes: dict[str, NotificationOutcome] = {}
    for alert_type, threshold in (
        (ALERT_TYPE_CADUCITY, inactivity.caducity_days),
        (ALERT_TYPE_PRESCRIPTION, inactivity.prescription_days),
    ):
        due = folder_inactivity_candidates(
            folders, settings, threshold, alert_type, today, force_daily
        )
        if not due:
            continue
        rendered = TemplateRenderer(session).render(
            CATEGORY_NOTIFICATIONS,
            folder_template_name(alert_type),
            build_folder_variables(user, due, threshold, settings.days_in_advance),
        )
        outcomes[alert_type] = deliver_email(
            session,
            user,
            ENTITY_FOLDER,
            [folder for folder, _ in due],
            rendered,
            alert_type=alert_type,
            settings_to_backfill=settings,
        )

    if not outcomes:
        return NotificationOutcome(
            status=OUTCOME_NOTHING_DUE, message="No hay carpetas para notificar"
        )

    notified = [outcome for outcome in outcomes.values() if outcome.notified]
    entity_ids = sorted({entity_id for outcome in notified for entity_id in outcome.entity_ids})
    return NotificationOutcome(
        status=OUTCOME_NOTIFIED if notified else OUTCOME_DELIVERY_FAILED,
        message="; ".join(outcome.message for outcome in outcomes.values()),
        count=sum(outcome.count for outcome in notified),
        entity_ids=entity_ids,
        details={alert_type: outcome.to_dict() for alert_type, outcome in outcomes.items()},
    )


def send_judicial_movement_notifications(
    session: Session,
    user_id: int,
    *,
    now: datetime | None = None,
) -> NotificationOutcome:
    """Email ``user_id`` the judicial movements whose notification time has come.

    Delivered movements move to ``sent``; after a transport failure they stay
    ``pending`` and are retried on the next sweep.
    """

    now = now or utcnow()
    repository = JudicialMovementRepository(session)
    movements = repository.list_pending_for_user(user_id, now)
    movement_ids = [movement.id for movement in movements]

    user = UserRepository(session).get(user_id)
    if user is None:
        if movement_ids:
            NotificationRecorder(session).append_record(
                ENTITY_JUDICIAL_MOVEMENT,
                movement_ids,
                NotificationRecord(
                    date=utcnow(),
                    channel=CHANNEL_SYSTEM,
                    success=False,
                    details="Usuario no encontrado",
                ),
            )
            repository.set_status(movement_ids, JUDICIAL_STATUS_FAILED)
        logger.warning(
            "User %s not found; %s judicial movements marked as failed",
            user_id,
            len(movement_ids),
        )
        return _user_not_found(user_id)

    if not movements:
        return NotificationOutcome(
            status=OUTCOME_NOTHING_DUE, message="No hay movimientos judiciales pendientes"
        )

    preferences = user.preferences
    if not preferences.email_enabled or not preferences.judicial:
        NotificationRecorder(session).append_record(
            ENTITY_JUDICIAL_MOVEMENT,
            movement_ids,
            NotificationRecord(
                date=utcnow(),
                channel=CHANNEL_SYSTEM,
                success=False,
                details="Notificaciones judiciales por email deshabilitadas",
            ),
        )
        repository.set_status(movement_ids, JUDICIAL_STATUS_FAILED)
        return NotificationOutcome(
            status=OUTCOME_DISABLED,
            message="Notificaciones judiciales por email deshabilitadas",
            entity_ids=movement_ids,
        )

    rendered = TemplateRenderer(session).render(
        CATEGORY_NOTIFICATIONS,
        TEMPLATE_NAMES[ENTITY_JUDICIAL_MOVEMENT],
        build_judicial_variables(user, movements),
    )
    outcome = deliver_email(session, user, ENTITY_JUDICIAL_MOVEMENT, movements, rendered)
    if outcome.notified:
        repository.set_status(movement_ids, JUDICIAL_STATUS_SENT)
    return outcome


__all__ = [
    "deliver_email",
    "folder_inactivity_candidates",
    "kind_enabled",
    "lookahead_days",
    "send_calendar_notifications",
    "send_due_date_notifications",
    "send_folder_inactivity_notifications",
    "send_judicial_movement_notifications",
    "send_movement_notifications",
    "send_task_notifications",
]
