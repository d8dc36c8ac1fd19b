"""Scheduled jobs and the registry used to run them by name."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from .cleanup_jobs import cleanup_job
from .notification_jobs import (
    JobSummary,
    calendar_notification_job,
    folder_inactivity_notification_job,
    judicial_movement_notification_job,
    movement_notification_job,
    send_admin_report,
    task_notification_job,
)

JOBS: dict[str, Callable[..., Awaitable[dict[str, Any]]]] = {
    "calendar": calendar_notification_job,
    "tasks": task_notification_job,
    "movements": movement_notification_job,
    "judicial-movements": judicial_movement_notification_job,
    "folder-inactivity": folder_inactivity_notification_job,
    "cleanup": cleanup_job,
}


async def run_job(name: str, *, channel: Any = None, **options: Any) -> dict[str, Any]:
    """Run the job registered under ``name`` and return its summary."""

    job = JOBS.get(name)
    if job is None:
        raise ValueError(f"Job desconocido: {name}")
    return await job(channel=channel, **options)


__all__ = [
    "JOBS",
    "JobSummary",
    "calendar_notification_job",
    "cleanup_job",
    "folder_inactivity_notification_job",
    "judicial_movement_notification_job",
    "movement_notification_job",
    "run_job",
    "send_admin_report",
    "task_notification_job",
]
