"""Schemas for the intake of judicial case movements."""

from datetime import datetime

from pydantic import BaseModel, Field


class ExpedienteInput(BaseModel):
    """Case file a movement belongs to."""

    id: str = Field(..., min_length=1)
    number: int
    year: int
    fuero: str
    caratula: str
    objeto: str | None = None


class MovementInput(BaseModel):
    date: datetime
    type: str = Field(..., min_length=1)
    detail: str = ""
    url: str | None = None


class JudicialMovementCreate(BaseModel):
    """Payload posted by the case scraper for one new movement."""

    user_id: int
    expediente: ExpedienteInput
    movement: MovementInput
    channels: list[str] | None = None


class JudicialMovementRead(BaseModel):
    id: int
    user_id: int
    unique_key: str
    notification_status: str
    notify_at: datetime | None = None
    created: bool


__all__ = [
    "ExpedienteInput",
    "JudicialMovementCreate",
    "JudicialMovementRead",
    "MovementInput",
]
