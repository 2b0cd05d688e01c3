"""
Sync orchestrator.

Drives the pagination loop for one run: fetch a page, forward it in
chunks, advance the cursor, and stop on a short or empty page. Each page
(fetch plus every forward) is one retried attempt; when the attempt
budget runs out the run is aborted and the next trigger starts over from
offset zero.
"""

import asyncio
from typing import Any, Protocol
from uuid import uuid4

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from igdb_sync.logger import get_logger
from igdb_sync.sync.contracts import (
    CatalogPage,
    CatalogRecord,
    RetryPolicy,
    RunOrigin,
    RunState,
    SyncCursor,
    SyncRunResult,
    chunk_page,
    count_chunks,
)
from igdb_sync.sync.delay import CancellableDelay, SyncCancelledError
from igdb_sync.sync.guard import SchedulerGuard


class CatalogFetcher(Protocol):
    async def fetch_page(self, offset: int) -> CatalogPage: ...


class ChunkForwarder(Protocol):
    async def forward(self, chunk: list[CatalogRecord]) -> None: ...


class SyncOrchestrator:
    """
    Runs the catalog sync loop.

    Runs never overlap: a run requested while another is in flight
    returns immediately with state ``skipped``. Errors never escape
    ``run()``; the outcome is reported in the returned ``SyncRunResult``.

    Example:
        >>> orchestrator = SyncOrchestrator(
        ...     fetcher=fetcher, forwarder=forwarder, guard=guard, page_size=500
        ... )
        >>> result = await orchestrator.run(RunOrigin.SCHEDULE)
        >>> result.state
        <RunState.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        *,
        fetcher: CatalogFetcher,
        forwarder: ChunkForwarder,
        guard: SchedulerGuard,
        page_size: int,
        chunk_size: int = 10,
        retry_policy: RetryPolicy | None = None,
        page_delay_seconds: float = 1.0,
        delay: CancellableDelay | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self._fetcher = fetcher
        self._forwarder = forwarder
        self._guard = guard
        self._page_size = page_size
        self._chunk_size = chunk_size
        self._retry_policy = retry_policy or RetryPolicy()
        self._page_delay_seconds = page_delay_seconds
        self._delay = delay or CancellableDelay()
        self._run_lock = asyncio.Lock()
        self._logger = get_logger(__name__, component="orchestrator")

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def cancel(self) -> None:
        """Interrupt any backoff or inter-page wait and stop further runs."""
        self._delay.cancel()

    async def run(self, origin: RunOrigin | str = RunOrigin.MANUAL) -> SyncRunResult:
        """
        Execute one full sync from offset zero.

        Args:
            origin: What triggered the run (startup, schedule, manual)

        Returns:
            SyncRunResult: Final state, counters and the aborting error, if any
        """
        origin = RunOrigin(origin)
        result = SyncRunResult(run_id=uuid4(), origin=origin)

        with structlog.contextvars.bound_contextvars(
            run_id=str(result.run_id),
            origin=origin.value,
        ):
            if self._run_lock.locked():
                self._logger.warning("Sync already in progress, skipping run")
                return result.finish(RunState.SKIPPED)

            async with self._run_lock:
                self._logger.info("Starting catalog sync")
                self._guard.pause()
                try:
                    await self._paginate(result)
                finally:
                    self._guard.resume()

            self._logger.info(
                "Catalog sync finished",
                state=result.state.value,
                pages_forwarded=result.pages_forwarded,
                records_forwarded=result.records_forwarded,
                chunks_forwarded=result.chunks_forwarded,
                duration_seconds=round(result.duration_seconds, 2),
            )

        return result

    async def _paginate(self, result: SyncRunResult) -> None:
        cursor = SyncCursor(page_size=self._page_size)

        try:
            has_next_page = True
            while has_next_page:
                if self._delay.cancelled:
                    raise SyncCancelledError("Sync cancelled", source="orchestrator")

                self._logger.info("Fetching results", offset=cursor.offset)
                page_length = await self._sync_page_with_retry(cursor.offset)
                result.offsets_fetched.append(cursor.offset)

                if page_length == 0:
                    break

                result.pages_forwarded += 1
                result.records_forwarded += page_length
                result.chunks_forwarded += count_chunks(page_length, self._chunk_size)

                cursor.advance()
                has_next_page = cursor.has_next_page(page_length)

                if has_next_page:
                    await self._delay.sleep(self._page_delay_seconds)

        except SyncCancelledError as e:
            self._logger.warning("Catalog sync cancelled", offset=cursor.offset)
            result.finish(RunState.CANCELLED, error=str(e))
            return
        except Exception as e:
            self._logger.exception(
                "Catalog sync aborted",
                offset=cursor.offset,
                attempts=self._retry_policy.max_attempts,
                error=str(e),
            )
            result.finish(RunState.ABORTED, error=str(e))
            return

        result.finish(RunState.COMPLETED)

    def _create_retrying(self) -> AsyncRetrying:
        """Create the per-page retry controller from the current policy."""
        policy = self._retry_policy
        return AsyncRetrying(
            retry=retry_if_not_exception_type(SyncCancelledError),
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(
                multiplier=policy.min_backoff_seconds,
                min=policy.min_backoff_seconds,
                max=policy.max_backoff_seconds,
                exp_base=policy.exponential_base,
            ),
            before_sleep=self._log_retry_attempt,
            sleep=self._delay.sleep,
            reraise=True,
        )

    def _log_retry_attempt(self, retry_state: Any) -> None:
        """Log retry attempts for observability."""
        self._logger.warning(
            "Retrying page",
            attempt=retry_state.attempt_number,
            max_attempts=self._retry_policy.max_attempts,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _sync_page_with_retry(self, offset: int) -> int:
        page_length = 0
        async for attempt in self._create_retrying():
            with attempt:
                page_length = await self._sync_page(offset)
        return page_length

    async def _sync_page(self, offset: int) -> int:
        """One attempt: fetch the page at ``offset`` and forward all of its chunks."""
        page = await self._fetcher.fetch_page(offset)
        if not page:
            return 0

        if len(page) > self._page_size:
            self._logger.warning(
                "Page larger than requested limit",
                offset=offset,
                records=len(page),
                page_size=self._page_size,
            )

        for chunk in chunk_page(page, self._chunk_size):
            await self._forwarder.forward(chunk)

        return len(page)
