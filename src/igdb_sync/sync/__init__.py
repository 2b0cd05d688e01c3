"""
Catalog sync core.

Pagination, per-page retry, chunked forwarding and the scheduler guard
that keeps the recurring trigger from overlapping with its own run.
"""

from igdb_sync.sync.contracts import (
    CatalogPage,
    CatalogRecord,
    RetryPolicy,
    RunOrigin,
    RunState,
    SyncCursor,
    SyncRunResult,
    chunk_page,
)
from igdb_sync.sync.delay import CancellableDelay, SyncCancelledError
from igdb_sync.sync.guard import APSchedulerRegistry, SchedulerGuard, SchedulingRegistry
from igdb_sync.sync.orchestrator import SyncOrchestrator

__all__ = [
    # Contracts
    "CatalogPage",
    "CatalogRecord",
    "RetryPolicy",
    "RunOrigin",
    "RunState",
    "SyncCursor",
    "SyncRunResult",
    "chunk_page",
    # Scheduling
    "APSchedulerRegistry",
    "SchedulerGuard",
    "SchedulingRegistry",
    # Orchestration
    "CancellableDelay",
    "SyncCancelledError",
    "SyncOrchestrator",
]
