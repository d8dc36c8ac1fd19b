"""Column types and mixins shared by the ORM models."""

from sqlalchemy import Boolean, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import expression
from sqlalchemy.types import JSON

from app.utils import utcnow

json_type = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class NotifiableMixin:
    """Columns carried by every table whose rows can trigger notifications.

    ``last_email_recorded_at`` and ``last_browser_recorded_at`` are the claim
    markers used by the recorder's conditional update; ``browser_alert_sent``
    is a one-way latch that is never reset to ``False``.
    """

    notification_settings = Column(json_type, nullable=True)
    browser_alert_sent = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )
    last_email_recorded_at = Column(DateTime, nullable=True)
    last_browser_recorded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)


__all__ = ["NotifiableMixin", "json_type"]
