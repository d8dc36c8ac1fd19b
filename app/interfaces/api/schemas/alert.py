"""Schemas for browser alert endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AlertRead(BaseModel):
    """Representation of a browser alert returned by the API."""

    id: int
    user_id: int
    primary_text: str
    secondary_text: str
    action_text: str
    avatar_type: str
    avatar_icon: str
    avatar_size: int
    folder_id: int | None = None
    source_type: str | None = None
    source_id: int | None = None
    expiration_date: datetime | None = None
    delivered: bool
    read: bool
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AlertMarkReadRequest(BaseModel):
    """Payload used to mark a batch of alerts as read."""

    ids: list[int] = Field(..., min_length=1, description="Identificadores de alertas")

    def unique_ids(self) -> list[int]:
        """Return the list of identifiers without duplicates preserving order."""

        return list(dict.fromkeys(self.ids))


class AlertMarkReadResponse(BaseModel):
    updated: int


__all__ = ["AlertMarkReadRequest", "AlertMarkReadResponse", "AlertRead"]
