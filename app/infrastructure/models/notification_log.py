"""SQLAlchemy model for the notification audit log."""

from sqlalchemy import Column, DateTime, Integer, String

from app.infrastructure.database import Base
from app.utils import utcnow

from .common import json_type


class NotificationLogModel(Base):
    """Append-only record of a delivery attempt."""

    __tablename__ = "notification_log"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(Integer, nullable=True)
    entity_snapshot = Column(json_type, nullable=False, default=dict)
    method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="created")
    content = Column(json_type, nullable=False, default=dict)
    delivery = Column(json_type, nullable=False, default=dict)
    config = Column(json_type, nullable=False, default=dict)
    # ``metadata`` is reserved by the declarative base.
    extra_metadata = Column("metadata", json_type, nullable=False, default=dict)
    sent_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)


__all__ = ["NotificationLogModel"]
