"""Persistence layer for notification log records."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import NotificationLog, NotificationStats
from app.infrastructure.models import NotificationLogModel
from app.utils import utcnow


class NotificationLogRepository:
    """Provide append, query and retention helpers for :class:`NotificationLog`."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, entry: NotificationLog) -> NotificationLog:
        model = NotificationLogModel()
        self._apply_entity_to_model(model, entry)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, entry_id: int) -> NotificationLog | None:
        """Return a log entry by its primary key, if present."""

        model = self.session.get(NotificationLogModel, entry_id)
        if model is None:
            return None
        return self._to_entity(model)

    def list(
        self,
        *,
        user_id: int | None = None,
        entity_type: str | None = None,
        method: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[NotificationLog]:
        """Return log entries, newest first, optionally filtered."""

        query = self.session.query(NotificationLogModel)
        if user_id is not None:
            query = query.filter(NotificationLogModel.user_id == user_id)
        if entity_type is not None:
            query = query.filter(NotificationLogModel.entity_type == entity_type)
        if method is not None:
            query = query.filter(NotificationLogModel.method == method)
        if status is not None:
            query = query.filter(NotificationLogModel.status == status)

        models: Iterable[NotificationLogModel] = (
            query.order_by(NotificationLogModel.created_at.desc(), NotificationLogModel.id.desc())
            .limit(limit)
            .all()
        )
        return [self._to_entity(model) for model in models]

    def get_stats(
        self,
        *,
        user_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> NotificationStats:
        """Count log entries by method, status and entity type."""

        stats = NotificationStats()
        for column, target in (
            (NotificationLogModel.method, stats.by_method),
            (NotificationLogModel.status, stats.by_status),
            (NotificationLogModel.entity_type, stats.by_entity_type),
        ):
            query = self.session.query(column, func.count(NotificationLogModel.id))
            if user_id is not None:
                query = query.filter(NotificationLogModel.user_id == user_id)
            if start is not None:
                query = query.filter(NotificationLogModel.created_at >= start)
            if end is not None:
                query = query.filter(NotificationLogModel.created_at <= end)
            for key, count in query.group_by(column).all():
                target[key] = count
        stats.total = sum(stats.by_method.values())
        return stats

    def delete_created_before(self, cutoff: datetime) -> int:
        """Delete entries older than ``cutoff`` and return how many were removed."""

        deleted = (
            self.session.query(NotificationLogModel)
            .filter(NotificationLogModel.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    @staticmethod
    def _to_entity(model: NotificationLogModel) -> NotificationLog:
        return NotificationLog(
            id=model.id,
            user_id=model.user_id,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            method=model.method,
            status=model.status,
            entity_snapshot=dict(model.entity_snapshot or {}),
            content=dict(model.content or {}),
            delivery=dict(model.delivery or {}),
            config=dict(model.config or {}),
            metadata=dict(model.extra_metadata or {}),
            sent_at=model.sent_at,
            expires_at=model.expires_at,
            created_at=model.created_at,
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationLogModel, entry: NotificationLog) -> None:
        model.user_id = entry.user_id
        model.entity_type = entry.entity_type
        model.entity_id = entry.entity_id
        model.method = entry.method
        model.status = entry.status
        model.entity_snapshot = dict(entry.entity_snapshot)
        model.content = dict(entry.content)
        model.delivery = dict(entry.delivery)
        model.config = dict(entry.config)
        model.extra_metadata = dict(entry.metadata)
        model.sent_at = entry.sent_at
        model.expires_at = entry.expires_at
        model.created_at = entry.created_at or utcnow()


__all__ = ["NotificationLogRepository"]
