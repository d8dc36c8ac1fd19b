"""SQLAlchemy model for financial movements with an expiration date."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from app.infrastructure.database import Base

from .common import NotifiableMixin


class MovementModel(NotifiableMixin, Base):
    """Database representation of a movement (fee, payment, deadline)."""

    __tablename__ = "movement"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    folder_id = Column(Integer, nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    movement_type = Column(String(50), nullable=True)
    amount = Column(Numeric(14, 2), nullable=True)
    date_expiration = Column(DateTime, nullable=True, index=True)


__all__ = ["MovementModel"]
