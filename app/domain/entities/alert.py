"""Domain entity representing a browser alert queued for a user."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Alert:
    """Realtime alert rendered in the web client.

    Alerts stay ``delivered=False`` until a live connection received them, so a
    user who was offline gets them on the next connection.
    """

    id: int | None
    user_id: int
    primary_text: str
    secondary_text: str
    action_text: str
    avatar_icon: str
    avatar_type: str = "icon"
    avatar_size: int = 48
    folder_id: int | None = None
    source_type: str | None = None
    source_id: int | None = None
    expiration_date: datetime | None = None
    delivered: bool = False
    read: bool = False
    delivery_attempts: int = 0
    last_delivery_attempt: datetime | None = None
    created_at: datetime | None = None


__all__ = ["Alert"]
