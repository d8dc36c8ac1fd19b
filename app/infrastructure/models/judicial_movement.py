"""SQLAlchemy model for judicial case movements awaiting notification."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from app.infrastructure.database import Base

from .common import NotifiableMixin, json_type


class JudicialMovementModel(NotifiableMixin, Base):
    """A movement of a court case (expediente) to be notified to a user."""

    __tablename__ = "judicial_movement"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    expediente_id = Column(String(64), nullable=False)
    expediente_number = Column(Integer, nullable=False)
    expediente_year = Column(Integer, nullable=False)
    fuero = Column(String(30), nullable=False)
    caratula = Column(String(500), nullable=False)
    objeto = Column(String(255), nullable=True)
    movement_date = Column(DateTime, nullable=False, index=True)
    movement_type = Column(String(120), nullable=False)
    movement_detail = Column(Text, nullable=False)
    movement_url = Column(String(500), nullable=True)
    notification_status = Column(String(20), nullable=False, default="pending", index=True)
    notify_at = Column(DateTime, nullable=False, index=True)
    channels = Column(json_type, nullable=False, default=lambda: ["email", "browser"])
    unique_key = Column(String(255), nullable=False, unique=True)


__all__ = ["JudicialMovementModel"]
