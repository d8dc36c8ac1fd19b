"""Utility helpers for reusable functionality."""

from .datetime import (
    day_key,
    days_between,
    end_of_day,
    ensure_app_timezone,
    ensure_utc_naive,
    format_display_date,
    get_app_timezone,
    now_in_app_timezone,
    start_of_day,
    to_utc_date,
    utcnow,
)

__all__ = [
    "day_key",
    "days_between",
    "end_of_day",
    "ensure_app_timezone",
    "ensure_utc_naive",
    "format_display_date",
    "get_app_timezone",
    "now_in_app_timezone",
    "start_of_day",
    "to_utc_date",
    "utcnow",
]
