"""Cron scheduling of the notification jobs with APScheduler."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import get_settings

logger = logging.getLogger(__name__)

JobRunner = Callable[..., Awaitable[dict[str, Any]]]

_CRON_SETTINGS = {
    "calendar": "calendar_job_cron",
    "tasks": "task_job_cron",
    "movements": "movement_job_cron",
    "judicial-movements": "judicial_movement_job_cron",
    "folder-inactivity": "folder_inactivity_job_cron",
    "cleanup": "cleanup_job_cron",
}


class NotificationScheduler:
    """Run every registered job on the cron expression configured for it."""

    def __init__(self, jobs: dict[str, JobRunner], *, channel: Any = None) -> None:
        self._jobs = jobs
        self._channel = channel
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    async def start(self) -> None:
        if self._scheduler is not None:
            logger.warning("Scheduler already running")
            return

        settings = get_settings()
        timezone = settings.app_timezone or "UTC"
        scheduler = AsyncIOScheduler(timezone=timezone)
        for name, job in self._jobs.items():
            expression = getattr(settings, _CRON_SETTINGS.get(name, ""), None)
            if not expression:
                logger.warning("No cron expression configured for job %s", name)
                continue
            scheduler.add_job(
                self._execute,
                trigger=CronTrigger.from_crontab(expression, timezone=timezone),
                args=[name, job],
                id=name,
                name=name,
                max_instances=1,
                coalesce=True,
            )
            logger.info("Scheduled job %s with cron '%s'", name, expression)
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Notification scheduler started with %s jobs", len(scheduler.get_jobs()))

    async def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Notification scheduler stopped")

    async def _execute(self, name: str, job: JobRunner) -> None:
        logger.info("Running scheduled job %s", name)
        try:
            await job(channel=self._channel)
        except Exception:
            logger.exception("Scheduled job %s failed", name)


__all__ = ["NotificationScheduler"]
