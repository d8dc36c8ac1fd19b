"""Helpers for working with timezone-aware datetimes and calendar days."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "America/Argentina/Buenos_Aires"
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    The timezone is resolved using the ``APP_TIMEZONE`` environment variable (via
    the ``Settings`` model). If the provided value cannot be resolved, the
    default ``America/Argentina/Buenos_Aires`` timezone is used as a fallback.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return _resolve_timezone(tz_name)


def now_in_app_timezone() -> datetime:
    """Return the current time localized to the configured timezone."""

    return datetime.now(tz=get_app_timezone())


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, as stored in the DB."""

    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in the configured timezone.

    Naive values are interpreted as UTC, which is how every timestamp is stored.
    """

    if value is None:
        return None

    tz = get_app_timezone()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def ensure_utc_naive(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC without ``tzinfo``."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_date(value: date | datetime) -> date:
    """Return the UTC calendar day of ``value``."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def start_of_day(value: date | datetime) -> datetime:
    """Return the first instant (UTC, naive) of the day containing ``value``."""

    return datetime.combine(to_utc_date(value), time.min)


def end_of_day(value: date | datetime) -> datetime:
    """Return the last instant (UTC, naive) of the day containing ``value``."""

    return datetime.combine(to_utc_date(value), time.max)


def day_key(value: date | datetime) -> str:
    """Return the ``YYYY-MM-DD`` representation of the UTC day of ``value``."""

    return to_utc_date(value).isoformat()


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Return the number of whole calendar days from ``start`` to ``end``."""

    return (to_utc_date(end) - to_utc_date(start)).days


def format_display_date(value: date | datetime | None) -> str:
    """Format ``value`` as ``DD/MM/YYYY`` for emails and alerts."""

    if value is None:
        return ""
    return to_utc_date(value).strftime("%d/%m/%Y")


def _resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve ``tz_name`` into a ``timezone`` instance."""

    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        match = _OFFSET_PATTERN.match(tz_name)
        if match:
            sign = -1 if match.group("sign") == "-" else 1
            hours = int(match.group("hours"))
            minutes = int(match.group("minutes") or 0)
            offset = timedelta(hours=hours, minutes=minutes)
            return timezone(sign * offset)
    return ZoneInfo(_DEFAULT_TIMEZONE)
