"""
Cancellable delay used for retry backoff and the inter-page pause.

A shutdown calls ``cancel()``; any in-progress or later ``sleep()``
then raises ``SyncCancelledError`` instead of waiting.
"""

import asyncio

from igdb_sync.sync.clients.base import SyncError


class SyncCancelledError(SyncError):
    """Raised when a wait is interrupted by shutdown."""

    pass


class CancellableDelay:
    """
    ``asyncio.sleep`` replacement that a shutdown signal can interrupt.

    Example:
        >>> delay = CancellableDelay()
        >>> await delay.sleep(30)   # returns after 30s unless cancel() is called
    """

    def __init__(self) -> None:
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def reset(self) -> None:
        self._cancelled.clear()

    async def sleep(self, seconds: float) -> None:
        """
        Wait ``seconds`` or until cancelled.

        Raises:
            SyncCancelledError: If cancelled before or during the wait
        """
        if self.cancelled:
            raise SyncCancelledError("Sync cancelled", source="delay")
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise SyncCancelledError(f"Sync cancelled during {seconds:.1f}s wait", source="delay")
