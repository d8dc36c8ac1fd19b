"""Decide which entities are due for a notification on a given day."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from app.domain.entities import (
    CHANNEL_EMAIL,
    DEFAULT_DAYS_IN_ADVANCE,
    DEFAULT_NOTIFY_ONCE_ONLY,
    ENTITY_EVENT,
    ENTITY_FOLDER,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    NotifiableEntity,
    NotificationRecord,
    NotificationSettings,
    ResolvedSettings,
    UserNotificationPreferences,
)
from app.utils import day_key, days_between, end_of_day, start_of_day

logger = logging.getLogger(__name__)


class MalformedEntityError(ValueError):
    """Raised when an entity lacks the date its notice period depends on."""

    def __init__(self, entity: NotifiableEntity) -> None:
        super().__init__(f"{entity.kind} {entity.id} has no trigger date")
        self.kind = entity.kind
        self.entity_id = entity.id


@dataclass(frozen=True)
class EligibilityResult:
    should_notify: bool
    effective_days_in_advance: int
    days_remaining: int | None = None


def _kind_defaults(
    kind: str, preferences: UserNotificationPreferences | None
) -> NotificationSettings:
    if preferences is None:
        return NotificationSettings()
    if kind == ENTITY_EVENT:
        return preferences.calendar_settings
    if kind in (ENTITY_TASK, ENTITY_MOVEMENT):
        return preferences.expiration_settings
    if kind == ENTITY_FOLDER:
        return preferences.inactivity_settings.as_notification_settings()
    return NotificationSettings()


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def resolve_settings(
    kind: str,
    entity_override: NotificationSettings | None,
    preferences: UserNotificationPreferences | None,
    days: int | None = None,
) -> ResolvedSettings:
    """Merge settings for ``kind``.

    Precedence: entity override, then the ``days`` requested by the caller,
    then the user's default for the kind, then the built-in defaults.
    """

    override = entity_override or NotificationSettings()
    defaults = _kind_defaults(kind, preferences)
    return ResolvedSettings(
        notify_once_only=_first(
            override.notify_once_only, defaults.notify_once_only, DEFAULT_NOTIFY_ONCE_ONLY
        ),
        days_in_advance=_first(
            override.days_in_advance, days, defaults.days_in_advance, DEFAULT_DAYS_IN_ADVANCE
        ),
    )


def apply_override(
    entity_override: NotificationSettings | None, effective_settings: ResolvedSettings
) -> ResolvedSettings:
    """Return ``effective_settings`` with the entity's own values on top."""

    if entity_override is None:
        return effective_settings
    return ResolvedSettings(
        notify_once_only=_first(
            entity_override.notify_once_only, effective_settings.notify_once_only
        ),
        days_in_advance=_first(
            entity_override.days_in_advance, effective_settings.days_in_advance
        ),
    )


def notification_window(today: date | datetime, days_in_advance: int) -> tuple[datetime, datetime]:
    """Return the inclusive ``[start, end]`` range of trigger dates due ``today``."""

    start = start_of_day(today)
    return start, end_of_day(start + timedelta(days=days_in_advance))


def countdown_eligible(
    days_remaining: int,
    settings: ResolvedSettings,
    history: Iterable[NotificationRecord],
    today: date | datetime,
    *,
    force_daily: bool = False,
    exact_threshold: bool = False,
) -> bool:
    """Shared decision for due dates and inactivity countdowns.

    ``history`` holds the successful records of the channel being evaluated.
    With ``exact_threshold`` the once-only policy fires only on the day the
    countdown equals the notice period.
    """

    days_in_advance = settings.days_in_advance
    if not 0 <= days_remaining <= days_in_advance:
        return False

    history = list(history)
    if settings.notify_once_only and not force_daily:
        if exact_threshold and days_remaining != days_in_advance:
            return False
        return not history

    today_key = day_key(today)
    return not any(day_key(record.date) == today_key for record in history)


def evaluate(
    entity: NotifiableEntity,
    effective_settings: ResolvedSettings,
    today: date | datetime,
    force_daily: bool = False,
    *,
    channel: str = CHANNEL_EMAIL,
) -> EligibilityResult:
    """Decide whether ``entity`` is due on ``channel`` for ``today``."""

    settings = apply_override(entity.notification_settings, effective_settings)
    if entity.trigger_date is None:
        raise MalformedEntityError(entity)

    days_remaining = days_between(today, entity.trigger_date)
    should_notify = countdown_eligible(
        days_remaining,
        settings,
        entity.records_for(channel),
        today,
        force_daily=force_daily,
    )
    return EligibilityResult(
        should_notify=should_notify,
        effective_days_in_advance=settings.days_in_advance,
        days_remaining=days_remaining,
    )


def evaluate_inactivity(
    folder: NotifiableEntity,
    effective_settings: ResolvedSettings,
    threshold_days: int,
    alert_type: str,
    today: date | datetime,
    force_daily: bool = False,
    *,
    channel: str = CHANNEL_EMAIL,
) -> EligibilityResult:
    """Decide whether ``folder`` reaches ``threshold_days`` of inactivity soon.

    The countdown runs from the folder's last activity; records only count
    when they carry the same ``alert_type``.
    """

    settings = apply_override(folder.notification_settings, effective_settings)
    if folder.trigger_date is None:
        raise MalformedEntityError(folder)

    deadline = folder.trigger_date + timedelta(days=threshold_days)
    days_remaining = days_between(today, deadline)
    should_notify = countdown_eligible(
        days_remaining,
        settings,
        folder.records_for(channel, alert_type=alert_type),
        today,
        force_daily=force_daily,
        exact_threshold=True,
    )
    return EligibilityResult(
        should_notify=should_notify,
        effective_days_in_advance=settings.days_in_advance,
        days_remaining=days_remaining,
    )


def select_eligible(
    entities: Iterable[NotifiableEntity],
    effective_settings: ResolvedSettings,
    today: date | datetime,
    force_daily: bool = False,
    *,
    channel: str = CHANNEL_EMAIL,
) -> list[tuple[NotifiableEntity, EligibilityResult]]:
    """Return the entities due on ``channel``; malformed ones are logged and skipped."""

    selected: list[tuple[NotifiableEntity, EligibilityResult]] = []
    for entity in entities:
        try:
            result = evaluate(entity, effective_settings, today, force_daily, channel=channel)
        except MalformedEntityError as exc:
            logger.warning("Skipping %s %s: %s", exc.kind, exc.entity_id, exc)
            continue
        if result.should_notify:
            selected.append((entity, result))
    return selected


__all__ = [
    "EligibilityResult",
    "MalformedEntityError",
    "apply_override",
    "countdown_eligible",
    "evaluate",
    "evaluate_inactivity",
    "notification_window",
    "resolve_settings",
    "select_eligible",
]
