"""Result values returned by the notification flows and the recorder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

OUTCOME_NOTIFIED = "notified"
OUTCOME_NOTHING_DUE = "nothing_due"
OUTCOME_DISABLED = "disabled"
OUTCOME_USER_NOT_FOUND = "user_not_found"
OUTCOME_INVALID_CONFIGURATION = "invalid_configuration"
OUTCOME_DELIVERY_FAILED = "delivery_failed"

_CONFIGURATION_ERRORS = frozenset({OUTCOME_USER_NOT_FOUND, OUTCOME_INVALID_CONFIGURATION})


@dataclass
class NotificationOutcome:
    """What happened when one user was processed for one kind and channel.

    Expected situations such as a missing user or nothing being due are
    reported through ``status`` instead of exceptions.
    """

    status: str
    message: str
    count: int = 0
    entity_ids: list[int] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def notified(self) -> bool:
        return self.status == OUTCOME_NOTIFIED

    @property
    def is_configuration_error(self) -> bool:
        return self.status in _CONFIGURATION_ERRORS

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "notified": self.notified,
            "message": self.message,
            "count": self.count,
            "entity_ids": list(self.entity_ids),
            "details": dict(self.details),
        }


@dataclass
class RecordingResult:
    """Summary of a conditional bulk append."""

    modified: int
    skipped: int
    total: int
    recorded_ids: list[int] = field(default_factory=list)
    notification_ids: dict[int, str] = field(default_factory=dict)


@dataclass
class SequentialReport:
    """Per-item report of the sequential recording path."""

    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    recorded_ids: list[int] = field(default_factory=list)
    skipped_ids: list[int] = field(default_factory=list)
    delivered: dict[int, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": list(self.errors),
        }


__all__ = [
    "NotificationOutcome",
    "OUTCOME_DELIVERY_FAILED",
    "OUTCOME_DISABLED",
    "OUTCOME_INVALID_CONFIGURATION",
    "OUTCOME_NOTHING_DUE",
    "OUTCOME_NOTIFIED",
    "OUTCOME_USER_NOT_FOUND",
    "RecordingResult",
    "SequentialReport",
]
