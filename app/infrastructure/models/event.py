"""SQLAlchemy model for calendar events."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from app.infrastructure.database import Base

from .common import NotifiableMixin


class EventModel(NotifiableMixin, Base):
    """Database representation of a calendar event."""

    __tablename__ = "event"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    folder_id = Column(Integer, nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    event_type = Column(String(50), nullable=True)
    start_date = Column(DateTime, nullable=True, index=True)
    end_date = Column(DateTime, nullable=True)
    all_day = Column(Boolean, nullable=False, default=False)


__all__ = ["EventModel"]
