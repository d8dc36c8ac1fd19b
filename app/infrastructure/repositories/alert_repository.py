"""Persistence helpers for browser alerts."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from app.domain.entities import Alert
from app.infrastructure.models import AlertModel
from app.utils import utcnow


class AlertRepository:
    """Provide queue-like operations for :class:`Alert` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, alert: Alert) -> Alert:
        model = AlertModel()
        self._apply_entity_to_model(model, alert)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def get(self, alert_id: int) -> Alert | None:
        model = self.session.get(AlertModel, alert_id)
        return self._to_entity(model) if model else None

    def list_for_user(
        self,
        user_id: int,
        *,
        unread_only: bool = False,
        limit: int | None = 50,
    ) -> Sequence[Alert]:
        query = self.session.query(AlertModel).filter(AlertModel.user_id == user_id)
        if unread_only:
            query = query.filter(AlertModel.read.is_(False))
        query = query.order_by(AlertModel.created_at.desc(), AlertModel.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def list_pending(self, user_id: int, *, limit: int | None = 10) -> Sequence[Alert]:
        """Return undelivered alerts of ``user_id``, newest first."""

        query = (
            self.session.query(AlertModel)
            .filter(AlertModel.user_id == user_id)
            .filter(AlertModel.delivered.is_(False))
            .order_by(AlertModel.created_at.desc(), AlertModel.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def mark_delivered(self, alert_ids: Iterable[int]) -> int:
        ids = [alert_id for alert_id in alert_ids if alert_id is not None]
        if not ids:
            return 0
        now = utcnow()
        updated = (
            self.session.query(AlertModel)
            .filter(AlertModel.id.in_(ids))
            .update(
                {
                    AlertModel.delivered: True,
                    AlertModel.last_delivery_attempt: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def register_attempt(self, alert_id: int) -> None:
        self.session.query(AlertModel).filter(AlertModel.id == alert_id).update(
            {
                AlertModel.delivery_attempts: AlertModel.delivery_attempts + 1,
                AlertModel.last_delivery_attempt: utcnow(),
            },
            synchronize_session=False,
        )
        self.session.commit()

    def mark_as_read(self, alert_ids: Iterable[int], *, user_id: int) -> int:
        ids = [alert_id for alert_id in alert_ids if alert_id is not None]
        if not ids:
            return 0
        updated = (
            self.session.query(AlertModel)
            .filter(AlertModel.id.in_(ids), AlertModel.user_id == user_id)
            .update({AlertModel.read: True}, synchronize_session=False)
        )
        self.session.commit()
        return updated

    def delete(self, alert_id: int, *, user_id: int | None = None) -> bool:
        query = self.session.query(AlertModel).filter(AlertModel.id == alert_id)
        if user_id is not None:
            query = query.filter(AlertModel.user_id == user_id)
        deleted = query.delete(synchronize_session=False)
        self.session.commit()
        return bool(deleted)

    def delete_created_before(self, cutoff: datetime) -> int:
        deleted = (
            self.session.query(AlertModel)
            .filter(AlertModel.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    @staticmethod
    def _apply_entity_to_model(model: AlertModel, alert: Alert) -> None:
        model.user_id = alert.user_id
        model.folder_id = alert.folder_id
        model.source_type = alert.source_type
        model.source_id = alert.source_id
        model.avatar_type = alert.avatar_type
        model.avatar_icon = alert.avatar_icon
        model.avatar_size = alert.avatar_size
        model.primary_text = alert.primary_text
        model.secondary_text = alert.secondary_text
        model.action_text = alert.action_text
        model.expiration_date = alert.expiration_date
        model.delivered = alert.delivered
        model.read = alert.read
        model.delivery_attempts = alert.delivery_attempts
        model.last_delivery_attempt = alert.last_delivery_attempt
        model.created_at = alert.created_at or utcnow()

    @staticmethod
    def _to_entity(model: AlertModel) -> Alert:
        return Alert(
            id=model.id,
            user_id=model.user_id,
            folder_id=model.folder_id,
            source_type=model.source_type,
            source_id=model.source_id,
            avatar_type=model.avatar_type,
            avatar_icon=model.avatar_icon,
            avatar_size=model.avatar_size,
            primary_text=model.primary_text,
            secondary_text=model.secondary_text,
            action_text=model.action_text,
            expiration_date=model.expiration_date,
            delivered=bool(model.delivered),
            read=bool(model.read),
            delivery_attempts=model.delivery_attempts or 0,
            last_delivery_attempt=model.last_delivery_attempt,
            created_at=model.created_at,
        )


__all__ = ["AlertRepository"]
