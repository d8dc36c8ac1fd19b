"""Retention sweep for logs, alerts and notified judicial movements."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from anyio import to_thread
from sqlalchemy.orm import Session

from app.config import get_settings
from app.infrastructure.database import SessionLocal
from app.infrastructure.repositories import JudicialMovementRepository
from app.utils import utcnow

from ..alerts import cleanup_alerts
from ..notification_logs import cleanup_notification_logs

logger = logging.getLogger(__name__)


def _delete_expired(session_factory: Callable[[], Session]) -> tuple[int, int, int]:
    settings = get_settings()
    session = session_factory()
    try:
        logs = cleanup_notification_logs(session)
        alerts = cleanup_alerts(session)
        movements = JudicialMovementRepository(session).delete_sent_before(
            utcnow() - timedelta(days=settings.judicial_movement_retention_days)
        )
    finally:
        session.close()
    return logs, alerts, movements


async def cleanup_job(
    *,
    channel: Any = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> dict[str, Any]:
    """Delete rows older than their configured retention period."""

    logs, alerts, movements = await to_thread.run_sync(_delete_expired, session_factory)

    logger.info(
        "Cleanup removed %s notification logs, %s alerts and %s judicial movements",
        logs,
        alerts,
        movements,
    )
    return {
        "job_name": "cleanup_job",
        "notification_logs_deleted": logs,
        "alerts_deleted": alerts,
        "judicial_movements_deleted": movements,
    }


__all__ = ["cleanup_job"]
