"""Intake of judicial case movements to be notified later in the day."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import (
    CHANNEL_BROWSER,
    CHANNEL_EMAIL,
    JUDICIAL_STATUS_PENDING,
    NotifiableEntity,
)
from app.infrastructure.repositories import JudicialMovementRepository, UserRepository
from app.utils import ensure_app_timezone, ensure_utc_naive, now_in_app_timezone

logger = logging.getLogger(__name__)


def build_unique_key(
    user_id: int,
    expediente_id: str,
    movement_date: datetime,
    movement_type: str,
    movement_detail: str,
) -> str:
    """Return the key that identifies one movement for one user."""

    digest = hashlib.md5((movement_detail or "").encode("utf-8")).hexdigest()[:8]
    day = ensure_app_timezone(movement_date).strftime("%Y-%m-%d")
    return f"{user_id}_{expediente_id}_{day}_{movement_type}_{digest}"


def calculate_notify_at(now: datetime | None = None) -> datetime:
    """Today at the configured notification hour, or ``now`` once it has passed.

    The result is naive UTC, as stored in the database.
    """

    local_now = ensure_app_timezone(now) if now is not None else now_in_app_timezone()
    scheduled = local_now.replace(
        hour=get_settings().judicial_notification_hour, minute=0, second=0, microsecond=0
    )
    if local_now >= scheduled:
        scheduled = local_now
    return ensure_utc_naive(scheduled)


def register_judicial_movement(
    session: Session,
    *,
    user_id: int,
    expediente: dict[str, Any],
    movement: dict[str, Any],
    channels: list[str] | None = None,
    now: datetime | None = None,
) -> tuple[NotifiableEntity, bool]:
    """Store a pending movement unless the same one was already registered.

    Returns the movement and whether it was created by this call.
    """

    if UserRepository(session).get(user_id) is None:
        raise ValueError("Usuario no encontrado")

    movement_date = movement["date"]
    unique_key = build_unique_key(
        user_id,
        str(expediente["id"]),
        movement_date,
        movement["type"],
        movement["detail"],
    )
    repository = JudicialMovementRepository(session)
    existing = repository.get_by_unique_key(unique_key)
    if existing is not None:
        logger.info("Judicial movement %s already registered", unique_key)
        return existing, False

    try:
        created = repository.create(
            user_id=user_id,
            expediente_id=str(expediente["id"]),
            expediente_number=expediente["number"],
            expediente_year=expediente["year"],
            fuero=expediente["fuero"],
            caratula=expediente["caratula"],
            objeto=expediente.get("objeto"),
            movement_date=ensure_utc_naive(movement_date),
            movement_type=movement["type"],
            movement_detail=movement["detail"],
            movement_url=movement.get("url"),
            notification_status=JUDICIAL_STATUS_PENDING,
            notify_at=calculate_notify_at(now),
            channels=list(channels or [CHANNEL_EMAIL, CHANNEL_BROWSER]),
            unique_key=unique_key,
        )
    except IntegrityError:
        session.rollback()
        existing = repository.get_by_unique_key(unique_key)
        if existing is None:
            raise
        return existing, False

    logger.info(
        "Registered judicial movement %s for user %s, notify at %s",
        created.id,
        user_id,
        created.attributes.get("notify_at"),
    )
    return created, True


__all__ = ["build_unique_key", "calculate_notify_at", "register_judicial_movement"]
