"""Pydantic models describing notification outcomes and the audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationOutcomeRead(BaseModel):
    """Result of processing one user for one kind and channel."""

    status: str
    notified: bool
    message: str
    count: int = 0
    entity_ids: list[int] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class NotificationLogRead(BaseModel):
    """One delivery attempt stored in the audit trail."""

    id: int
    user_id: int
    entity_type: str
    entity_id: int | None = None
    method: str
    status: str
    entity_snapshot: dict[str, Any] = Field(default_factory=dict)
    content: dict[str, Any] = Field(default_factory=dict)
    delivery: dict[str, Any] = Field(default_factory=dict)
    config: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    sent_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationStatsRead(BaseModel):
    total: int
    by_method: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    by_entity_type: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class ConnectionStatusRead(BaseModel):
    user_id: int
    connected: bool
    connections: int


__all__ = [
    "ConnectionStatusRead",
    "NotificationLogRead",
    "NotificationOutcomeRead",
    "NotificationStatsRead",
]
