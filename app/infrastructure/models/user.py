"""SQLAlchemy model for the user table."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.infrastructure.database import Base
from app.utils import utcnow

from .common import json_type


class UserModel(Base):
    """Database representation of a platform user and its preferences."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(120), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    preferences = Column(json_type, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


__all__ = ["UserModel"]
