"""
Sync service: wiring plus the APScheduler triggers.

Two independent triggers feed ``SyncOrchestrator.run``: a daily cron
job, which the scheduler guard pauses while a run is in flight, and a
one-shot job fired as soon as the scheduler starts. The orchestrator's
run lock keeps them from overlapping.
"""

import asyncio
import signal
from contextlib import AsyncExitStack
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from igdb_sync.config import Settings, get_settings
from igdb_sync.logger import get_logger
from igdb_sync.sync.clients.igdb import IGDBCatalogClient
from igdb_sync.sync.clients.ingestion import BatchForwarder
from igdb_sync.sync.contracts import RetryPolicy, RunOrigin, SyncRunResult
from igdb_sync.sync.credentials import SyncCredentialProvider
from igdb_sync.sync.fetcher import PageFetcher
from igdb_sync.sync.guard import APSchedulerRegistry, SchedulerGuard
from igdb_sync.sync.orchestrator import SyncOrchestrator


def build_cron_trigger(settings: Settings) -> CronTrigger:
    """Build the recurring trigger from the scheduler section."""
    return CronTrigger.from_crontab(
        settings.scheduler.cron,
        timezone=settings.scheduler.timezone,
    )


class SyncService:
    """
    Owns the clients, the orchestrator and (optionally) the scheduler.

    Without a scheduler the guard has nothing to pause, which is what
    one-off runs from the command line want.

    Example:
        >>> async with SyncService(settings, scheduler=AsyncIOScheduler()) as service:
        ...     service.start()
        ...     await service.wait_closed()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        scheduler: AsyncIOScheduler | None = None,
        orchestrator: SyncOrchestrator | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._scheduler = scheduler
        self._logger = get_logger(__name__, component="service")
        self._exit_stack = AsyncExitStack()
        self._stopped = asyncio.Event()

        job_name = self._settings.scheduler.job_name
        self._startup_job_name = f"{job_name}-startup"
        self._orchestrator = orchestrator or self._build_orchestrator()

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    @property
    def scheduler(self) -> AsyncIOScheduler | None:
        return self._scheduler

    @property
    def startup_job_name(self) -> str:
        return self._startup_job_name

    def _build_orchestrator(self) -> SyncOrchestrator:
        settings = self._settings

        credentials = SyncCredentialProvider.from_config(settings.igdb, settings.ingestion)
        catalog = IGDBCatalogClient.from_config(settings.igdb)
        forwarder = BatchForwarder.from_config(settings.ingestion, credentials)

        self._exit_stack.push_async_callback(credentials.close)
        self._exit_stack.push_async_callback(catalog.close)
        self._exit_stack.push_async_callback(forwarder.close)

        registry = APSchedulerRegistry(self._scheduler) if self._scheduler is not None else None

        return SyncOrchestrator(
            fetcher=PageFetcher(catalog, credentials),
            forwarder=forwarder,
            guard=SchedulerGuard(registry, settings.scheduler.job_name),
            page_size=settings.igdb.page_size,
            chunk_size=settings.ingestion.chunk_size,
            retry_policy=RetryPolicy.from_config(settings.retry),
            page_delay_seconds=settings.scheduler.page_delay_seconds,
        )

    def start(self) -> None:
        """
        Register both triggers and start the scheduler.

        Must be called from inside a running event loop.

        Raises:
            RuntimeError: If the service was built without a scheduler
        """
        if self._scheduler is None:
            raise RuntimeError("SyncService has no scheduler to start")

        job_name = self._settings.scheduler.job_name
        self._scheduler.add_job(
            self._orchestrator.run,
            trigger=build_cron_trigger(self._settings),
            id=job_name,
            name=job_name,
            kwargs={"origin": RunOrigin.SCHEDULE},
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

        if self._settings.scheduler.run_on_startup:
            self._scheduler.add_job(
                self._orchestrator.run,
                trigger=DateTrigger(),
                id=self._startup_job_name,
                name=self._startup_job_name,
                kwargs={"origin": RunOrigin.STARTUP},
                replace_existing=True,
                misfire_grace_time=None,
            )

        self._scheduler.start()
        self._logger.info(
            "Sync scheduler started",
            job_name=job_name,
            cron=self._settings.scheduler.cron,
            timezone=self._settings.scheduler.timezone,
            run_on_startup=self._settings.scheduler.run_on_startup,
        )

    async def run_once(self, origin: RunOrigin = RunOrigin.MANUAL) -> SyncRunResult:
        """Run a single sync immediately."""
        return await self._orchestrator.run(origin)

    def stop(self) -> None:
        """Request shutdown; ``wait_closed`` returns once this is called."""
        self._orchestrator.cancel()
        self._stopped.set()

    async def wait_closed(self) -> None:
        await self._stopped.wait()

    async def close(self) -> None:
        """Cancel any run, stop the scheduler and close HTTP clients."""
        self._orchestrator.cancel()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            self._logger.info("Sync scheduler shut down")
        await self._exit_stack.aclose()

    async def __aenter__(self) -> "SyncService":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def serve(settings: Settings | None = None) -> None:
    """
    Run the sync service until SIGINT or SIGTERM.

    Args:
        settings: Configuration (loads from environment if None)
    """
    settings = settings or get_settings()
    scheduler = AsyncIOScheduler(timezone=settings.scheduler.timezone)

    async with SyncService(settings, scheduler=scheduler) as service:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, service.stop)
            except NotImplementedError:
                # Windows event loops have no signal handler support
                pass

        service.start()
        await service.wait_closed()
