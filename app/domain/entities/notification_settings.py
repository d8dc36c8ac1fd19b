"""Value types describing notification preferences and resolved settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

DEFAULT_NOTIFY_ONCE_ONLY = True
DEFAULT_DAYS_IN_ADVANCE = 5
DEFAULT_CADUCITY_DAYS = 180
DEFAULT_PRESCRIPTION_DAYS = 730


def _optional_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass(frozen=True)
class NotificationSettings:
    """Partial settings stored on an entity or a user; ``None`` means inherit."""

    notify_once_only: bool | None = None
    days_in_advance: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "NotificationSettings | None":
        if not isinstance(data, Mapping):
            return None
        return cls(
            notify_once_only=_optional_bool(data.get("notifyOnceOnly")),
            days_in_advance=_optional_int(data.get("daysInAdvance")),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.notify_once_only is not None:
            payload["notifyOnceOnly"] = self.notify_once_only
        if self.days_in_advance is not None:
            payload["daysInAdvance"] = self.days_in_advance
        return payload


@dataclass(frozen=True)
class ResolvedSettings:
    """Fully resolved settings used by the eligibility evaluator."""

    notify_once_only: bool = DEFAULT_NOTIFY_ONCE_ONLY
    days_in_advance: int = DEFAULT_DAYS_IN_ADVANCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "notifyOnceOnly": self.notify_once_only,
            "daysInAdvance": self.days_in_advance,
        }


@dataclass(frozen=True)
class InactivitySettings:
    """Folder inactivity preferences, including the legal thresholds."""

    notify_once_only: bool | None = None
    days_in_advance: int | None = None
    caducity_days: int = DEFAULT_CADUCITY_DAYS
    prescription_days: int = DEFAULT_PRESCRIPTION_DAYS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "InactivitySettings":
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            notify_once_only=_optional_bool(data.get("notifyOnceOnly")),
            days_in_advance=_optional_int(data.get("daysInAdvance")),
            caducity_days=_optional_int(data.get("caducityDays")) or DEFAULT_CADUCITY_DAYS,
            prescription_days=(
                _optional_int(data.get("prescriptionDays")) or DEFAULT_PRESCRIPTION_DAYS
            ),
        )

    def as_notification_settings(self) -> NotificationSettings:
        return NotificationSettings(
            notify_once_only=self.notify_once_only,
            days_in_advance=self.days_in_advance,
        )


@dataclass
class UserNotificationPreferences:
    """Per-user channel switches and per-kind defaults.

    Email is considered enabled unless explicitly disabled, while the browser
    channel must be explicitly enabled. This mirrors how preferences are stored
    by the platform, where older users may not have a ``browser`` key at all.
    """

    email_enabled: bool = True
    browser_enabled: bool = False
    mobile_enabled: bool = False
    calendar: bool = True
    expiration: bool = True
    inactivity: bool = True
    judicial: bool = True
    calendar_settings: NotificationSettings = field(default_factory=NotificationSettings)
    expiration_settings: NotificationSettings = field(default_factory=NotificationSettings)
    inactivity_settings: InactivitySettings = field(default_factory=InactivitySettings)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "UserNotificationPreferences":
        data = data if isinstance(data, Mapping) else {}
        channels = data.get("channels") if isinstance(data.get("channels"), Mapping) else {}
        kinds = data.get("user") if isinstance(data.get("user"), Mapping) else {}
        return cls(
            email_enabled=channels.get("email") is not False,
            browser_enabled=channels.get("browser") is True,
            mobile_enabled=channels.get("mobile") is True,
            calendar=kinds.get("calendar") is not False,
            expiration=kinds.get("expiration") is not False,
            inactivity=kinds.get("inactivity") is not False,
            judicial=kinds.get("judicial") is not False,
            calendar_settings=(
                NotificationSettings.from_dict(kinds.get("calendarSettings"))
                or NotificationSettings()
            ),
            expiration_settings=(
                NotificationSettings.from_dict(kinds.get("expirationSettings"))
                or NotificationSettings()
            ),
            inactivity_settings=InactivitySettings.from_dict(kinds.get("inactivitySettings")),
        )


def default_preferences_document() -> dict[str, Any]:
    """Return the preference document stored for newly created users."""

    kind_defaults = {
        "notifyOnceOnly": DEFAULT_NOTIFY_ONCE_ONLY,
        "daysInAdvance": DEFAULT_DAYS_IN_ADVANCE,
    }
    return {
        "channels": {"email": True, "browser": True, "mobile": False},
        "user": {
            "calendar": True,
            "expiration": True,
            "inactivity": True,
            "judicial": True,
            "calendarSettings": dict(kind_defaults),
            "expirationSettings": dict(kind_defaults),
            "inactivitySettings": {
                **kind_defaults,
                "caducityDays": DEFAULT_CADUCITY_DAYS,
                "prescriptionDays": DEFAULT_PRESCRIPTION_DAYS,
            },
        },
    }


__all__ = [
    "DEFAULT_CADUCITY_DAYS",
    "DEFAULT_DAYS_IN_ADVANCE",
    "DEFAULT_NOTIFY_ONCE_ONLY",
    "DEFAULT_PRESCRIPTION_DAYS",
    "InactivitySettings",
    "NotificationSettings",
    "ResolvedSettings",
    "UserNotificationPreferences",
    "default_preferences_document",
]
