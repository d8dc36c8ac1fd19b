"""SQLAlchemy model for the per-entity notification history."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from app.infrastructure.database import Base
from app.utils import utcnow


class NotificationRecordModel(Base):
    """One history entry of a notifiable row, addressed by kind and id."""

    __tablename__ = "notification_record"
    __table_args__ = (
        Index("ix_notification_record_entity", "entity_type", "entity_id", "channel"),
    )

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(Integer, nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow)
    channel = Column(String(20), nullable=False)
    success = Column(Boolean, nullable=False)
    details = Column(Text, nullable=False, default="")
    notification_id = Column(String(32), nullable=True, index=True)
    alert_type = Column(String(20), nullable=True)


__all__ = ["NotificationRecordModel"]
