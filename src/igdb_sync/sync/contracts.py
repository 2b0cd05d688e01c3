"""
Data contracts for a sync run.

Everything here lives for one run only and is never persisted.
"""

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from igdb_sync.config import RetryConfig

# Opaque record; only counted, chunked and keyed by "id"
CatalogRecord = dict[str, Any]
CatalogPage = list[CatalogRecord]


class RunOrigin(str, Enum):
    """What started a run."""

    STARTUP = "startup"
    SCHEDULE = "schedule"
    MANUAL = "manual"


class RunState(str, Enum):
    """Lifecycle of a sync run."""

    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


@dataclass
class SyncCursor:
    """Pagination position within one run."""

    page_size: int
    offset: int = 0

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}")

    def advance(self) -> None:
        """Move to the next page."""
        self.offset += self.page_size

    def has_next_page(self, page_length: int) -> bool:
        """A full page means there may be more records after it."""
        return page_length >= self.page_size


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and backoff for one page.

    The wait before retry ``n`` (1-based) is
    ``min_backoff_seconds * exponential_base ** (n - 1)``,
    capped at ``max_backoff_seconds``.
    """

    max_attempts: int = 3
    min_backoff_seconds: float = 30.0
    max_backoff_seconds: float = 300.0
    exponential_base: float = 2.0

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            min_backoff_seconds=config.min_backoff_seconds,
            max_backoff_seconds=config.max_backoff_seconds,
            exponential_base=config.exponential_base,
        )


def chunk_page(page: Sequence[CatalogRecord], chunk_size: int) -> Iterator[list[CatalogRecord]]:
    """
    Split a page into contiguous chunks of at most ``chunk_size`` records.

    Chunks preserve page order; the last one may be shorter.

    Raises:
        ValueError: If chunk_size is less than 1
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    for start in range(0, len(page), chunk_size):
        yield list(page[start : start + chunk_size])


def count_chunks(page_length: int, chunk_size: int) -> int:
    return math.ceil(page_length / chunk_size)


@dataclass
class SyncRunResult:
    """Outcome of one sync run."""

    run_id: UUID
    origin: RunOrigin
    state: RunState = RunState.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    offsets_fetched: list[int] = field(default_factory=list)
    pages_forwarded: int = 0
    records_forwarded: int = 0
    chunks_forwarded: int = 0
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        """Get total duration in seconds."""
        end = self.completed_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.COMPLETED

    def finish(self, state: RunState, *, error: str | None = None) -> "SyncRunResult":
        """Mark the run terminal."""
        self.state = state
        self.error = error
        self.completed_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view for logs and CLI output."""
        return {
            "run_id": str(self.run_id),
            "origin": self.origin.value,
            "state": self.state.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "offsets_fetched": self.offsets_fetched,
            "pages_forwarded": self.pages_forwarded,
            "records_forwarded": self.records_forwarded,
            "chunks_forwarded": self.chunks_forwarded,
            "error": self.error,
        }
