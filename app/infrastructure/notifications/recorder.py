"""Duplicate-safe recording of notification history."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import timedelta
from typing import Any

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import (
    ALERT_TYPE_CADUCITY,
    ALERT_TYPE_PRESCRIPTION,
    CHANNEL_BROWSER,
    CHANNEL_EMAIL,
    NotificationRecord,
    RecordingResult,
    ResolvedSettings,
    SequentialReport,
    generate_notification_id,
)
from app.infrastructure.models import NOTIFIABLE_MODELS, NotificationRecordModel
from app.utils import ensure_utc_naive, utcnow

logger = logging.getLogger(__name__)

_MARKER_COLUMNS = {
    CHANNEL_EMAIL: "last_email_recorded_at",
    CHANNEL_BROWSER: "last_browser_recorded_at",
}

_ALERT_TYPES = (ALERT_TYPE_CADUCITY, ALERT_TYPE_PRESCRIPTION)


def _marker_for(model: Any, record: NotificationRecord) -> Any:
    """Return the claim marker column for the channel and alert type of ``record``.

    Records carrying an alert type are claimed on their own marker, so the
    caducity and prescription notices of one folder never shadow each other.
    """

    base = _MARKER_COLUMNS.get(record.channel)
    if base is None:
        raise ValueError(f"Channel {record.channel} cannot be recorded atomically")
    if record.alert_type is None:
        return getattr(model, base)
    if record.alert_type not in _ALERT_TYPES:
        raise ValueError(f"Unsupported alert type: {record.alert_type}")
    name = f"last_{record.channel}_{record.alert_type}_recorded_at"
    marker = getattr(model, name, None)
    if marker is None:
        raise ValueError(f"{model.__tablename__} rows have no {record.alert_type} alerts")
    return marker


def _unique_ids(entity_ids: Iterable[int | None]) -> list[int]:
    unique: list[int] = []
    seen: set[int] = set()
    for entity_id in entity_ids:
        if entity_id is None or entity_id in seen:
            continue
        seen.add(entity_id)
        unique.append(entity_id)
    return unique


def _model_for(kind: str) -> Any:
    try:
        return NOTIFIABLE_MODELS[kind]
    except KeyError as exc:
        raise ValueError(f"Unsupported entity kind: {kind}") from exc


class NotificationRecorder:
    """Append notification records to entities at most once per window.

    A batch is claimed with one conditional ``UPDATE ... RETURNING`` over the
    ``last_<channel>_recorded_at`` marker (for folders, the marker of the
    channel and alert type). Only the rows returned by that statement receive
    a history entry, so concurrent callers issuing the same batch cannot both
    append: the database serializes the update and the loser's predicate no
    longer matches.
    """

    def __init__(self, session: Session, *, window_seconds: int | None = None) -> None:
        self.session = session
        if window_seconds is None:
            window_seconds = get_settings().duplicate_window_seconds
        self.window_seconds = window_seconds

    def record(
        self,
        kind: str,
        entity_ids: Iterable[int],
        record: NotificationRecord,
        *,
        window_seconds: int | None = None,
        settings_to_backfill: ResolvedSettings | None = None,
    ) -> RecordingResult:
        """Append ``record`` to every entity not recorded on its channel recently."""

        model = _model_for(kind)
        ids = _unique_ids(entity_ids)
        if not ids:
            return RecordingResult(modified=0, skipped=0, total=0)

        marker = _marker_for(model, record)

        window = self.window_seconds if window_seconds is None else window_seconds
        now = ensure_utc_naive(record.date) or utcnow()
        cutoff = now - timedelta(seconds=window)

        values: dict[Any, Any] = {marker: now}
        if record.channel == CHANNEL_BROWSER and record.success:
            values[model.browser_alert_sent] = True

        try:
            if settings_to_backfill is not None:
                self.session.execute(
                    update(model)
                    .where(model.id.in_(ids), model.notification_settings.is_(None))
                    .values({model.notification_settings: settings_to_backfill.to_dict()})
                    .execution_options(synchronize_session=False)
                )

            claimed = self.session.execute(
                update(model)
                .where(model.id.in_(ids), or_(marker.is_(None), marker <= cutoff))
                .values(values)
                .returning(model.id, model.user_id)
                .execution_options(synchronize_session=False)
            ).all()

            notification_ids: dict[int, str] = {}
            for entity_id, user_id in claimed:
                notification_id = record.notification_id or generate_notification_id(
                    user_id, entity_id, record.channel, now
                )
                self.session.add(
                    NotificationRecordModel(
                        entity_type=kind,
                        entity_id=entity_id,
                        date=now,
                        channel=record.channel,
                        success=record.success,
                        details=record.details,
                        notification_id=notification_id,
                        alert_type=record.alert_type,
                    )
                )
                notification_ids[entity_id] = notification_id
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

        recorded_ids = sorted(notification_ids)
        result = RecordingResult(
            modified=len(recorded_ids),
            skipped=len(ids) - len(recorded_ids),
            total=len(ids),
            recorded_ids=recorded_ids,
            notification_ids=notification_ids,
        )
        logger.debug(
            "Recorded %s notification for %s %s: %s modified, %s skipped",
            record.channel,
            result.total,
            kind,
            result.modified,
            result.skipped,
        )
        return result

    def record_sequential(
        self,
        kind: str,
        entity_ids: Iterable[int],
        record: NotificationRecord,
        *,
        before_record: Callable[[int], Any] | None = None,
        window_seconds: int | None = None,
        settings_to_backfill: ResolvedSettings | None = None,
    ) -> SequentialReport:
        """Deliver and record item by item, isolating per-item failures.

        ``before_record`` runs first for each id; its return value is kept in
        ``report.delivered`` for recorded and skipped ids alike. An exception in the
        hook or in the recording marks only that item as failed.
        """

        report = SequentialReport()
        for entity_id in _unique_ids(entity_ids):
            report.total += 1
            try:
                delivered = before_record(entity_id) if before_record is not None else None
                result = self.record(
                    kind,
                    [entity_id],
                    replace(record, date=utcnow()),
                    window_seconds=window_seconds,
                    settings_to_backfill=settings_to_backfill,
                )
            except Exception as exc:
                self.session.rollback()
                logger.warning(
                    "Failed to record %s notification for %s %s: %s",
                    record.channel,
                    kind,
                    entity_id,
                    exc,
                )
                report.failed += 1
                report.errors.append({"item_id": entity_id, "error": str(exc)})
                continue

            report.delivered[entity_id] = delivered
            if result.modified:
                report.successful += 1
                report.recorded_ids.append(entity_id)
            else:
                report.skipped += 1
                report.skipped_ids.append(entity_id)
        return report

    def append_record(
        self, kind: str, entity_ids: Iterable[int], record: NotificationRecord
    ) -> int:
        """Append ``record`` unconditionally to every existing entity in the batch."""

        model = _model_for(kind)
        ids = _unique_ids(entity_ids)
        if not ids:
            return 0
        existing = [
            row[0]
            for row in self.session.query(model.id).filter(model.id.in_(ids)).all()
        ]
        now = ensure_utc_naive(record.date) or utcnow()
        for entity_id in existing:
            self.session.add(
                NotificationRecordModel(
                    entity_type=kind,
                    entity_id=entity_id,
                    date=now,
                    channel=record.channel,
                    success=record.success,
                    details=record.details,
                    notification_id=record.notification_id,
                    alert_type=record.alert_type,
                )
            )
        self.session.commit()
        return len(existing)

    def clean_duplicate_records(
        self, kind: str, entity_id: int, *, window_seconds: int | None = None
    ) -> int:
        """Remove records that repeat a channel inside the window of an earlier one."""

        window = timedelta(
            seconds=self.window_seconds if window_seconds is None else window_seconds
        )
        records = (
            self.session.query(NotificationRecordModel)
            .filter(NotificationRecordModel.entity_type == kind)
            .filter(NotificationRecordModel.entity_id == entity_id)
            .order_by(NotificationRecordModel.date, NotificationRecordModel.id)
            .all()
        )
        last_kept: dict[tuple[str, str | None], Any] = {}
        duplicates: list[int] = []
        for record in records:
            key = (record.channel, record.alert_type)
            previous = last_kept.get(key)
            if previous is not None and record.date - previous < window:
                duplicates.append(record.id)
                continue
            last_kept[key] = record.date

        if duplicates:
            self.session.query(NotificationRecordModel).filter(
                NotificationRecordModel.id.in_(duplicates)
            ).delete(synchronize_session=False)
            self.session.commit()
            logger.info(
                "Removed %s duplicate notification records from %s %s",
                len(duplicates),
                kind,
                entity_id,
            )
        return len(duplicates)


__all__ = ["NotificationRecorder"]
