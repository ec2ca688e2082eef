"""APScheduler-based scheduler for periodic task draining.

Provides helpers to schedule and manage periodic drain jobs for the task
queue, so queued backend operations are retried once servers recover.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from searchbridge.tasks.manager import DrainResult, TaskManager

logger = logging.getLogger(__name__)


class TaskScheduler:
    """Schedules periodic runs of `TaskManager.drain()` using AsyncIOScheduler."""

    def __init__(self) -> None:
        self._scheduler = AsyncIOScheduler()
        self._started = False

    def start(self) -> None:
        """Start the underlying scheduler if not already started."""
        if not self._started:
            self._scheduler.start(paused=False)
            self._started = True

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the scheduler."""
        if self._started:
            self._scheduler.shutdown(wait=wait)
            self._started = False

    def schedule_drain(
        self,
        manager: TaskManager,
        *,
        interval: timedelta = timedelta(minutes=1),
        server_id: Optional[str] = None,
        job_id: Optional[str] = None,
        replace_existing: bool = True,
    ) -> str:
        """Schedule periodic execution of ``manager.drain(server_id)``.

        Parameters
        ----------
        manager: TaskManager
            The task manager to drain.
        interval: timedelta
            How often to run the drain job (default 1 minute).
        server_id: Optional[str]
            Restrict the job to one server's tasks.
        job_id: Optional[str]
            Explicit job id to allow replacing/canceling.
        replace_existing: bool
            If True, replace any existing job with the same id.

        Returns the job id.
        """
        job_id = job_id or f"drain:{server_id or '*'}"

        async def _job() -> None:
            result: DrainResult = await asyncio.to_thread(manager.drain, server_id)
            if result.any_failed:
                logger.warning("Drain %s left failing servers: %s", job_id, sorted(result.failing_servers))

        trigger = IntervalTrigger(seconds=int(interval.total_seconds()))
        self._scheduler.add_job(
            _job,
            trigger=trigger,
            id=job_id,
            replace_existing=replace_existing,
            max_instances=1,
            coalesce=True,
        )
        return job_id

    def cancel(self, job_id: str) -> None:
        self._scheduler.remove_job(job_id)
