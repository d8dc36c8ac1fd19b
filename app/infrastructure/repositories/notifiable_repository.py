"""Persistence helpers for notifiable entities and their notification history."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import (
    ENTITY_EVENT,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    JUDICIAL_STATUS_PENDING,
    JUDICIAL_STATUS_SENT,
    NotifiableEntity,
    NotificationRecord,
    NotificationSettings,
)
from app.infrastructure.models import (
    NOTIFIABLE_MODELS,
    TASK_CLOSED_STATUSES,
    FolderModel,
    JudicialMovementModel,
    NotificationRecordModel,
    TaskModel,
)

_TRIGGER_COLUMNS = {
    ENTITY_EVENT: "start_date",
    ENTITY_TASK: "due_date",
    ENTITY_MOVEMENT: "date_expiration",
    ENTITY_JUDICIAL_MOVEMENT: "movement_date",
}


def folder_last_activity(model: FolderModel) -> datetime | None:
    """Return the most recent activity date recorded on a folder."""

    dates = [
        value
        for value in (
            model.last_movement_date,
            model.initial_date_folder,
            model.final_date_folder,
            model.judicial_initial_date,
            model.judicial_final_date,
        )
        if value is not None
    ]
    return max(dates) if dates else None


class NotifiableRepository:
    """Query notifiable rows of one ``kind`` together with their history."""

    def __init__(self, session: Session, kind: str) -> None:
        if kind not in NOTIFIABLE_MODELS:
            raise ValueError(f"Unsupported entity kind: {kind}")
        self.session = session
        self.kind = kind
        self.model = NOTIFIABLE_MODELS[kind]

    def get(self, entity_id: int) -> NotifiableEntity | None:
        model = self.session.get(self.model, entity_id)
        if model is None:
            return None
        return self._to_entities([model])[0]

    def list_due_for_user(
        self,
        user_id: int,
        *,
        start: datetime,
        end: datetime,
        exclude_browser_sent: bool = False,
    ) -> list[NotifiableEntity]:
        """Return entities of ``user_id`` whose trigger date lies in ``[start, end]``."""

        if self.kind not in _TRIGGER_COLUMNS:
            raise ValueError(f"Entities of kind {self.kind} have no trigger date column")

        column = getattr(self.model, _TRIGGER_COLUMNS[self.kind])
        query = (
            self.session.query(self.model)
            .filter(self.model.user_id == user_id)
            .filter(column >= start, column <= end)
        )
        if self.kind == ENTITY_TASK:
            query = query.filter(TaskModel.status.notin_(TASK_CLOSED_STATUSES))
            query = query.filter(TaskModel.checked.is_(False))
        if exclude_browser_sent:
            query = query.filter(self.model.browser_alert_sent.is_(False))
        return self._to_entities(query.order_by(column, self.model.id).all())

    def list_active_folders(self, user_id: int) -> list[NotifiableEntity]:
        if self.kind != ENTITY_FOLDER:
            raise ValueError("Only folder repositories list folders")
        query = (
            self.session.query(FolderModel)
            .filter(FolderModel.user_id == user_id)
            .filter(FolderModel.archived.is_(False))
            .order_by(FolderModel.id)
        )
        return self._to_entities(query.all())

    def history_for(self, entity_ids: Sequence[int]) -> dict[int, list[NotificationRecord]]:
        """Return the ordered history of every id in ``entity_ids``."""

        history: dict[int, list[NotificationRecord]] = defaultdict(list)
        if not entity_ids:
            return history
        query = (
            self.session.query(NotificationRecordModel)
            .filter(NotificationRecordModel.entity_type == self.kind)
            .filter(NotificationRecordModel.entity_id.in_(list(entity_ids)))
            .order_by(NotificationRecordModel.date, NotificationRecordModel.id)
        )
        for record in query.all():
            history[record.entity_id].append(record_to_entity(record))
        return history

    def _to_entities(self, models: Sequence[Any]) -> list[NotifiableEntity]:
        history = self.history_for([model.id for model in models])
        return [self._to_entity(model, history.get(model.id, [])) for model in models]

    def _to_entity(
        self, model: Any, history: list[NotificationRecord]
    ) -> NotifiableEntity:
        entity = NotifiableEntity(
            id=model.id,
            kind=self.kind,
            user_id=model.user_id,
            trigger_date=None,
            notifications=history,
            notification_settings=NotificationSettings.from_dict(model.notification_settings),
            browser_alert_sent=bool(model.browser_alert_sent),
        )
        _KIND_MAPPERS[self.kind](model, entity)
        return entity


class JudicialMovementRepository(NotifiableRepository):
    """Extra queries for judicial movements, which follow a status lifecycle."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, ENTITY_JUDICIAL_MOVEMENT)

    def pending_user_ids(self, now: datetime) -> list[int]:
        rows = (
            self.session.query(JudicialMovementModel.user_id)
            .filter(JudicialMovementModel.notification_status == JUDICIAL_STATUS_PENDING)
            .filter(JudicialMovementModel.notify_at <= now)
            .distinct()
            .order_by(JudicialMovementModel.user_id)
            .all()
        )
        return [row[0] for row in rows]

    def list_pending_for_user(self, user_id: int, now: datetime) -> list[NotifiableEntity]:
        query = (
            self.session.query(JudicialMovementModel)
            .filter(JudicialMovementModel.user_id == user_id)
            .filter(JudicialMovementModel.notification_status == JUDICIAL_STATUS_PENDING)
            .filter(JudicialMovementModel.notify_at <= now)
            .order_by(
                JudicialMovementModel.expediente_id,
                JudicialMovementModel.movement_date,
                JudicialMovementModel.id,
            )
        )
        return self._to_entities(query.all())

    def set_status(self, entity_ids: Iterable[int], status: str) -> int:
        ids = [entity_id for entity_id in entity_ids if entity_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(JudicialMovementModel)
            .filter(JudicialMovementModel.id.in_(ids))
            .update(
                {JudicialMovementModel.notification_status: status},
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def get_by_unique_key(self, unique_key: str) -> NotifiableEntity | None:
        model = (
            self.session.query(JudicialMovementModel)
            .filter(JudicialMovementModel.unique_key == unique_key)
            .first()
        )
        if model is None:
            return None
        return self._to_entities([model])[0]

    def create(self, **fields: Any) -> NotifiableEntity:
        model = JudicialMovementModel(**fields)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entities([model])[0]

    def delete_sent_before(self, cutoff: datetime) -> int:
        """Delete sent movements created before ``cutoff`` and their history."""

        ids = [
            row[0]
            for row in self.session.query(JudicialMovementModel.id)
            .filter(JudicialMovementModel.notification_status == JUDICIAL_STATUS_SENT)
            .filter(JudicialMovementModel.created_at < cutoff)
            .all()
        ]
        if not ids:
            return 0
        self.session.query(NotificationRecordModel).filter(
            NotificationRecordModel.entity_type == self.kind,
            NotificationRecordModel.entity_id.in_(ids),
        ).delete(synchronize_session=False)
        deleted = (
            self.session.query(JudicialMovementModel)
            .filter(JudicialMovementModel.id.in_(ids))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted


def record_to_entity(model: NotificationRecordModel) -> NotificationRecord:
    return NotificationRecord(
        id=model.id,
        date=model.date,
        channel=model.channel,
        success=bool(model.success),
        details=model.details or "",
        notification_id=model.notification_id,
        alert_type=model.alert_type,
    )


def _map_event(model: Any, entity: NotifiableEntity) -> None:
    entity.trigger_date = model.start_date
    entity.title = model.title
    entity.description = model.description
    entity.attributes = {
        "folder_id": model.folder_id,
        "event_type": model.event_type,
        "end_date": model.end_date,
        "all_day": bool(model.all_day),
    }


def _map_task(model: Any, entity: NotifiableEntity) -> None:
    entity.trigger_date = model.due_date
    entity.title = model.name
    entity.description = model.description
    entity.attributes = {
        "folder_id": model.folder_id,
        "status": model.status,
        "priority": model.priority,
        "checked": bool(model.checked),
    }


def _map_movement(model: Any, entity: NotifiableEntity) -> None:
    entity.trigger_date = model.date_expiration
    entity.title = model.title
    entity.description = model.description
    entity.attributes = {
        "folder_id": model.folder_id,
        "movement_type": model.movement_type,
        "amount": float(model.amount) if model.amount is not None else None,
    }


def _map_judicial_movement(model: Any, entity: NotifiableEntity) -> None:
    entity.trigger_date = model.movement_date
    entity.title = model.caratula
    entity.description = model.movement_detail
    entity.attributes = {
        "expediente": {
            "id": model.expediente_id,
            "number": model.expediente_number,
            "year": model.expediente_year,
            "fuero": model.fuero,
            "caratula": model.caratula,
            "objeto": model.objeto,
        },
        "movement": {
            "date": model.movement_date,
            "type": model.movement_type,
            "detail": model.movement_detail,
            "url": model.movement_url,
        },
        "notification_status": model.notification_status,
        "notify_at": model.notify_at,
        "channels": list(model.channels or []),
        "unique_key": model.unique_key,
    }


def _map_folder(model: Any, entity: NotifiableEntity) -> None:
    entity.trigger_date = folder_last_activity(model)
    entity.title = model.folder_name
    entity.attributes = {
        "folder_id": model.id,
        "materia": model.materia,
        "status": model.status,
    }


_KIND_MAPPERS = {
    ENTITY_EVENT: _map_event,
    ENTITY_TASK: _map_task,
    ENTITY_MOVEMENT: _map_movement,
    ENTITY_JUDICIAL_MOVEMENT: _map_judicial_movement,
    ENTITY_FOLDER: _map_folder,
}


__all__ = [
    "JudicialMovementRepository",
    "NotifiableRepository",
    "folder_last_activity",
    "record_to_entity",
]
