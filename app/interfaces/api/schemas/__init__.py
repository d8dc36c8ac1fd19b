from .alert import AlertMarkReadRequest, AlertMarkReadResponse, AlertRead
from .job import JobRunResponse
from .judicial_movement import (
    ExpedienteInput,
    JudicialMovementCreate,
    JudicialMovementRead,
    MovementInput,
)
from .notification import (
    ConnectionStatusRead,
    NotificationLogRead,
    NotificationOutcomeRead,
    NotificationStatsRead,
)

__all__ = [
    "AlertMarkReadRequest",
    "AlertMarkReadResponse",
    "AlertRead",
    "ConnectionStatusRead",
    "ExpedienteInput",
    "JobRunResponse",
    "JudicialMovementCreate",
    "JudicialMovementRead",
    "MovementInput",
    "NotificationLogRead",
    "NotificationOutcomeRead",
    "NotificationStatsRead",
]
