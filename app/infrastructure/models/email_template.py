"""SQLAlchemy model for stored email templates."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint

from app.infrastructure.database import Base
from app.utils import utcnow

from .common import json_type


class EmailTemplateModel(Base):
    """Database representation of an email template."""

    __tablename__ = "email_template"
    __table_args__ = (UniqueConstraint("category", "name", name="uq_email_template_name"),)

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String(50), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    subject = Column(String(255), nullable=False)
    html_body = Column(Text, nullable=False, default="")
    text_body = Column(Text, nullable=False, default="")
    description = Column(String(255), nullable=False, default="")
    variables = Column(json_type, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)


__all__ = ["EmailTemplateModel"]
