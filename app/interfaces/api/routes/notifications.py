"""Endpoints and websocket handler for notifications."""

from __future__ import annotations

import logging
from datetime import datetime

from anyio import to_thread
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from app.application.use_cases.alerts import mark_alerts_as_read
from app.application.use_cases.notification_logs import (
    get_notification_stats,
    list_notification_logs,
)
from app.application.use_cases.notifications import (
    send_browser_alerts,
    send_due_date_notifications,
    send_folder_browser_alerts,
    send_folder_inactivity_notifications,
    send_judicial_browser_alerts,
    send_judicial_movement_notifications,
)
from app.domain.entities import (
    ENTITY_EVENT,
    ENTITY_FOLDER,
    ENTITY_JUDICIAL_MOVEMENT,
    ENTITY_MOVEMENT,
    ENTITY_TASK,
    OUTCOME_INVALID_CONFIGURATION,
    OUTCOME_USER_NOT_FOUND,
    NotificationOutcome,
    User,
)
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.notifications import BrowserChannel
from app.infrastructure.repositories import JudicialMovementRepository
from app.interfaces.api.dependencies import (
    get_browser_channel,
    get_current_active_user,
    require_admin,
)
from app.interfaces.api.schemas import (
    ConnectionStatusRead,
    NotificationLogRead,
    NotificationOutcomeRead,
    NotificationStatsRead,
)
from app.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

_KINDS = {
    "calendar": ENTITY_EVENT,
    "tasks": ENTITY_TASK,
    "movements": ENTITY_MOVEMENT,
    "folders": ENTITY_FOLDER,
    "judicial-movements": ENTITY_JUDICIAL_MOVEMENT,
}


def _resolve_kind(kind: str) -> str:
    try:
        return _KINDS[kind]
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tipo de notificación desconocido: {kind}",
        ) from exc


def _to_response(outcome: NotificationOutcome) -> NotificationOutcomeRead:
    if outcome.status == OUTCOME_USER_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.message)
    if outcome.status == OUTCOME_INVALID_CONFIGURATION:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.message)
    return NotificationOutcomeRead(**outcome.to_dict())


@router.post("/{kind}/email", response_model=NotificationOutcomeRead)
def send_email_notifications(
    kind: str,
    days: int | None = None,
    force_daily: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationOutcomeRead:
    """Run the email flow of ``kind`` for the authenticated user right now."""

    entity_kind = _resolve_kind(kind)
    if entity_kind == ENTITY_JUDICIAL_MOVEMENT:
        outcome = send_judicial_movement_notifications(db, current_user.id)
    elif entity_kind == ENTITY_FOLDER:
        outcome = send_folder_inactivity_notifications(
            db, current_user.id, days=days, force_daily=force_daily
        )
    else:
        outcome = send_due_date_notifications(
            db, entity_kind, current_user.id, days=days, force_daily=force_daily
        )
    return _to_response(outcome)


@router.post("/{kind}/browser", response_model=NotificationOutcomeRead)
async def send_browser_notifications(
    kind: str,
    days: int | None = None,
    force_daily: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    channel: BrowserChannel = Depends(get_browser_channel),
) -> NotificationOutcomeRead:
    """Create and push browser alerts of ``kind`` for the authenticated user."""

    entity_kind = _resolve_kind(kind)
    if entity_kind == ENTITY_JUDICIAL_MOVEMENT:
        pending = await to_thread.run_sync(
            JudicialMovementRepository(db).list_pending_for_user, current_user.id, utcnow()
        )
        movements = [movement for movement in pending if not movement.browser_alert_sent]
        outcome = await send_judicial_browser_alerts(db, channel, current_user, movements)
    elif entity_kind == ENTITY_FOLDER:
        outcome = await send_folder_browser_alerts(
            db, channel, current_user.id, days=days, force_daily=force_daily
        )
    else:
        outcome = await send_browser_alerts(
            db, channel, entity_kind, current_user.id, days=days, force_daily=force_daily
        )
    return _to_response(outcome)


@router.get("/logs", response_model=list[NotificationLogRead])
def list_logs(
    entity_type: str | None = None,
    method: str | None = None,
    log_status: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[NotificationLogRead]:
    """Return the audit trail of the authenticated user, newest first."""

    entries = list_notification_logs(
        db,
        user_id=current_user.id,
        entity_type=entity_type,
        method=method,
        status=log_status,
        limit=limit,
    )
    return [NotificationLogRead.model_validate(entry) for entry in entries]


@router.get("/stats", response_model=NotificationStatsRead)
def read_stats(
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationStatsRead:
    stats = get_notification_stats(db, user_id=current_user.id, start=start, end=end)
    return NotificationStatsRead.model_validate(stats)


@router.get("/connections", response_model=list[ConnectionStatusRead])
def list_connections(
    _: User = Depends(require_admin),
    channel: BrowserChannel = Depends(get_browser_channel),
) -> list[ConnectionStatusRead]:
    """Return the users that currently hold a realtime connection."""

    return [
        ConnectionStatusRead(
            user_id=user_id,
            connected=True,
            connections=channel.get_connection_count(user_id),
        )
        for user_id in channel.registry.connected_user_ids()
    ]


def _mark_read(user_id: int, ids: list) -> int:
    session = SessionLocal()
    try:
        return mark_alerts_as_read(session, user_id, ids)
    finally:
        session.close()


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams browser alerts to the authenticated user."""

    channel: BrowserChannel = websocket.app.state.browser_channel
    await websocket.accept()
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "authenticate":
                await channel.authenticate(
                    websocket, message.get("userId"), str(message.get("token") or "")
                )
                continue

            user_id = channel.user_for(websocket)
            if user_id is None:
                continue

            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
            elif message_type == "mark_read":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    updated = await to_thread.run_sync(_mark_read, user_id, ids)
                    await websocket.send_json({"type": "marked_read", "updated": updated})
    except WebSocketDisconnect:
        logger.debug("Realtime client disconnected")
    finally:
        await channel.disconnect(websocket)


__all__ = ["router"]
