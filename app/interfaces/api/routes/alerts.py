"""Routes for the browser alerts of the authenticated user."""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.application.use_cases.alerts import (
    delete_alert as delete_alert_uc,
    list_user_alerts,
    mark_alerts_as_read,
)
from app.domain.entities import User
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_current_active_user
from app.interfaces.api.schemas import AlertMarkReadRequest, AlertMarkReadResponse, AlertRead

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("/", response_model=list[AlertRead])
def list_alerts(
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[AlertRead]:
    """Return the most recent alerts of the authenticated user."""

    alerts = list_user_alerts(db, current_user.id, unread_only=unread_only, limit=limit)
    return [AlertRead.model_validate(alert) for alert in alerts]


@router.post("/read", response_model=AlertMarkReadResponse)
def mark_read(
    payload: AlertMarkReadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AlertMarkReadResponse:
    updated = mark_alerts_as_read(db, current_user.id, payload.unique_ids())
    return AlertMarkReadResponse(updated=updated)


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_alert(
    alert_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Response:
    """Delete the alert identified by ``alert_id``."""

    try:
        delete_alert_uc(db, current_user.id, alert_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
