"""Intake endpoint for judicial case movements."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import register_judicial_movement
from app.domain.entities import User
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import require_admin
from app.interfaces.api.schemas import JudicialMovementCreate, JudicialMovementRead

router = APIRouter(prefix="/judicial-movements", tags=["judicial_movements"])


@router.post("/", response_model=JudicialMovementRead, status_code=status.HTTP_201_CREATED)
def create_judicial_movement(
    payload: JudicialMovementCreate,
    response: Response,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> JudicialMovementRead:
    """Register a movement to be notified; repeated posts return the stored one."""

    try:
        movement, created = register_judicial_movement(
            db,
            user_id=payload.user_id,
            expediente=payload.expediente.model_dump(),
            movement=payload.movement.model_dump(),
            channels=payload.channels,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    if not created:
        response.status_code = status.HTTP_200_OK
    return JudicialMovementRead(
        id=movement.id,
        user_id=movement.user_id,
        unique_key=movement.attributes["unique_key"],
        notification_status=movement.attributes["notification_status"],
        notify_at=movement.attributes.get("notify_at"),
        created=created,
    )


__all__ = ["router"]
