"""Integration tests for the APScheduler-backed registry and the sync service."""

import asyncio
import json
from typing import Any

import httpx
import pytest
import respx
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from igdb_sync.config import get_settings
from igdb_sync.sync.contracts import RetryPolicy, RunOrigin, RunState
from igdb_sync.sync.guard import APSchedulerRegistry, SchedulerGuard
from igdb_sync.sync.orchestrator import SyncOrchestrator
from igdb_sync.sync.scheduler import SyncService, build_cron_trigger

JOB_NAME = "igdb-node-sync"


async def noop() -> None:
    pass


class ObservingFetcher:
    """Captures the recurring job's next run time while the sync is fetching."""

    def __init__(self, scheduler: AsyncIOScheduler) -> None:
        self._scheduler = scheduler
        self.next_run_during_fetch: list[Any] = []
        self.fetched = asyncio.Event()

    async def fetch_page(self, offset: int) -> list[dict[str, Any]]:
        job = self._scheduler.get_job(JOB_NAME)
        self.next_run_during_fetch.append(job.next_run_time if job else "missing")
        self.fetched.set()
        return [{"id": 1}]


class NullForwarder:
    async def forward(self, chunk: list[dict[str, Any]]) -> None:
        pass


class TestAPSchedulerRegistry:
    """Tests against a running AsyncIOScheduler."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self) -> None:
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(noop, CronTrigger.from_crontab("0 0 * * *"), id=JOB_NAME)
        scheduler.start()
        registry = APSchedulerRegistry(scheduler)

        try:
            registry.pause(JOB_NAME)
            assert registry.lookup(JOB_NAME).next_run_time is None

            registry.resume(JOB_NAME)
            assert registry.lookup(JOB_NAME).next_run_time is not None
        finally:
            scheduler.shutdown(wait=False)

    @pytest.mark.asyncio
    async def test_missing_job(self) -> None:
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.start()
        registry = APSchedulerRegistry(scheduler)

        try:
            with pytest.raises(JobLookupError):
                registry.pause(JOB_NAME)
            assert SchedulerGuard(registry, JOB_NAME).pause() is False
        finally:
            scheduler.shutdown(wait=False)


class TestSyncService:
    """Tests for trigger registration and the startup run."""

    def test_build_cron_trigger(self, mock_env: None) -> None:
        trigger = build_cron_trigger(get_settings())

        assert isinstance(trigger, CronTrigger)
        assert str(trigger.timezone) == "UTC"

    @pytest.mark.asyncio
    async def test_startup_run_pauses_recurring_job(self, mock_env: None) -> None:
        scheduler = AsyncIOScheduler(timezone="UTC")
        fetcher = ObservingFetcher(scheduler)
        orchestrator = SyncOrchestrator(
            fetcher=fetcher,
            forwarder=NullForwarder(),
            guard=SchedulerGuard(APSchedulerRegistry(scheduler), JOB_NAME),
            page_size=500,
            retry_policy=RetryPolicy(min_backoff_seconds=0),
            page_delay_seconds=0,
        )

        async with SyncService(
            get_settings(), scheduler=scheduler, orchestrator=orchestrator
        ) as service:
            service.start()

            job = scheduler.get_job(JOB_NAME)
            assert job is not None
            assert isinstance(job.trigger, CronTrigger)

            await asyncio.wait_for(fetcher.fetched.wait(), timeout=5)
            for _ in range(100):
                if not orchestrator.is_running:
                    break
                await asyncio.sleep(0.01)

            assert fetcher.next_run_during_fetch == [None]
            assert scheduler.get_job(JOB_NAME).next_run_time is not None
            assert scheduler.get_job(service.startup_job_name) is None

    @pytest.mark.asyncio
    async def test_start_without_scheduler(self, mock_env: None) -> None:
        async with SyncService(get_settings()) as service:
            with pytest.raises(RuntimeError):
                service.start()

    @respx.mock
    @pytest.mark.asyncio
    async def test_run_once_end_to_end(self, mock_env: None) -> None:
        """Full run against mocked Twitch, IGDB and ingestion endpoints."""
        catalog = [{"id": i} for i in range(7)]

        def serve_page(request: httpx.Request) -> httpx.Response:
            body = request.content.decode()
            offset = int(body.split("offset ")[1].rstrip(";"))
            assert request.headers["Authorization"] == "Bearer app-token"
            return httpx.Response(200, json=catalog[offset : offset + 5])

        respx.post("https://id.twitch.tv/oauth2/token").mock(
            return_value=httpx.Response(
                200, json={"access_token": "app-token", "expires_in": 3600}
            )
        )
        igdb = respx.post("https://api.igdb.com/v4/games").mock(side_effect=serve_page)
        queue = respx.post("https://ingest.example.com/v1/game/queue").mock(
            return_value=httpx.Response(202)
        )

        with pytest.MonkeyPatch.context() as mp:
            mp.setenv("IGDB_PAGE_SIZE", "5")
            mp.setenv("INGESTION_CHUNK_SIZE", "2")
            mp.setenv("SCHEDULER_PAGE_DELAY_SECONDS", "0")
            mp.setenv("RETRY_MIN_BACKOFF_SECONDS", "0")
            get_settings.cache_clear()
            settings = get_settings()

        async with SyncService(settings) as service:
            result = await service.run_once(RunOrigin.MANUAL)

        assert result.state == RunState.COMPLETED
        assert result.offsets_fetched == [0, 5]
        assert igdb.call_count == 2
        # 5 records -> 3 chunks, 2 records -> 1 chunk
        assert queue.call_count == 4
        sent = [r for call in queue.calls for r in json.loads(call.request.content)["games"]]
        assert sent == catalog

    @respx.mock
    @pytest.mark.asyncio
    async def test_rejected_token_is_refreshed_on_retry(self, mock_env: None) -> None:
        """A 401 from IGDB makes the next attempt request a new Twitch token."""

        def serve_page(request: httpx.Request) -> httpx.Response:
            if request.headers["Authorization"] != "Bearer good":
                return httpx.Response(401, json={"message": "Authorization Failure"})
            return httpx.Response(200, json=[{"id": 1}, {"id": 2}])

        token = respx.post("https://id.twitch.tv/oauth2/token").mock(
            side_effect=[
                httpx.Response(200, json={"access_token": "revoked", "expires_in": 3600}),
                httpx.Response(200, json={"access_token": "good", "expires_in": 3600}),
            ]
        )
        igdb = respx.post("https://api.igdb.com/v4/games").mock(side_effect=serve_page)
        queue = respx.post("https://ingest.example.com/v1/game/queue").mock(
            return_value=httpx.Response(202)
        )

        with pytest.MonkeyPatch.context() as mp:
            mp.setenv("SCHEDULER_PAGE_DELAY_SECONDS", "0")
            mp.setenv("RETRY_MIN_BACKOFF_SECONDS", "0")
            get_settings.cache_clear()
            settings = get_settings()

        async with SyncService(settings) as service:
            result = await service.run_once(RunOrigin.MANUAL)

        assert result.state == RunState.COMPLETED
        assert token.call_count == 2
        assert igdb.call_count == 2
        assert igdb.calls.last.request.headers["Authorization"] == "Bearer good"
        assert queue.call_count == 1
