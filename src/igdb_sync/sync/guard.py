"""
Scheduler guard.

Pauses the recurring sync job while a run is in flight and resumes it
afterwards, so the trigger cannot fire into its own run. Both calls are
best-effort: a registry failure is logged and ignored.
"""

from typing import Any, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.job import Job
from apscheduler.schedulers.base import BaseScheduler

from igdb_sync.logger import get_logger


class SchedulingRegistry(Protocol):
    """Named access to recurring jobs."""

    def lookup(self, name: str) -> Any: ...

    def pause(self, name: str) -> None: ...

    def resume(self, name: str) -> None: ...


class APSchedulerRegistry:
    """``SchedulingRegistry`` backed by an APScheduler scheduler, keyed by job id."""

    def __init__(self, scheduler: BaseScheduler) -> None:
        self._scheduler = scheduler

    def lookup(self, name: str) -> Job:
        job = self._scheduler.get_job(name)
        if job is None:
            raise JobLookupError(name)
        return job

    def pause(self, name: str) -> None:
        self.lookup(name).pause()

    def resume(self, name: str) -> None:
        self.lookup(name).resume()


class SchedulerGuard:
    """
    Pause/resume wrapper around one named job.

    Only stops the recurring trigger from overlapping with itself; it
    gives no exclusion against runs started any other way.
    """

    def __init__(self, registry: SchedulingRegistry | None, job_name: str) -> None:
        self._registry = registry
        self._job_name = job_name
        self._logger = get_logger(__name__, component="guard", job_name=job_name)

    @property
    def job_name(self) -> str:
        return self._job_name

    def pause(self) -> bool:
        """Pause the recurring job; returns False if that was not possible."""
        return self._apply("pause")

    def resume(self) -> bool:
        """Resume the recurring job; returns False if that was not possible."""
        return self._apply("resume")

    def _apply(self, action: str) -> bool:
        if self._registry is None:
            self._logger.debug("No scheduling registry, skipping", action=action)
            return False
        try:
            getattr(self._registry, action)(self._job_name)
        except Exception as e:
            self._logger.warning(
                "Could not update recurring job",
                action=action,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        self._logger.debug("Recurring job updated", action=action)
        return True
