"""SQLAlchemy model for browser alerts."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import expression

from app.infrastructure.database import Base
from app.utils import utcnow


class AlertModel(Base):
    """Database representation of an alert shown in the web client."""

    __tablename__ = "alert"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    folder_id = Column(Integer, nullable=True)
    source_type = Column(String(30), nullable=True)
    source_id = Column(Integer, nullable=True)
    avatar_type = Column(String(20), nullable=False, default="icon")
    avatar_icon = Column(String(50), nullable=False)
    avatar_size = Column(Integer, nullable=False, default=48)
    primary_text = Column(String(255), nullable=False)
    secondary_text = Column(String(255), nullable=False, default="")
    action_text = Column(String(100), nullable=False, default="")
    expiration_date = Column(DateTime, nullable=True)
    delivered = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    read = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    delivery_attempts = Column(Integer, nullable=False, default=0)
    last_delivery_attempt = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)


__all__ = ["AlertModel"]
