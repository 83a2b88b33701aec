"""Single-slot debounce timer."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class Debouncer:
    """Runs a coroutine once a quiet period passes without new triggers.

    There is at most one pending timer; ``schedule`` cancels and replaces it.
    Once the timer fires, the callback runs detached from the slot, so a new
    ``schedule`` never cancels a callback that is already running.
    """

    def __init__(self, delay_ms: int, callback: Callable[[], Awaitable[None]]):
        """Initialize the debouncer.

        Args:
            delay_ms: Quiet period in milliseconds.
            callback: Coroutine function run when the timer fires.
        """
        self.delay_ms = delay_ms
        self._callback = callback
        self._timer: Optional[asyncio.Task] = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """Check if a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def schedule(self) -> None:
        """(Re)start the quiet period."""
        self.cancel()
        self._timer = asyncio.create_task(self._wait_then_fire())

    def cancel(self) -> bool:
        """Cancel the pending timer, if any.

        Returns:
            True if a timer was cancelled.
        """
        if self.pending:
            self._timer.cancel()
            self._timer = None
            return True
        self._timer = None
        return False

    async def wait_idle(self) -> None:
        """Wait for callbacks that already fired to finish."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self.delay_ms / 1000)

        # Free the slot before running so the callback is never cancelled
        self._timer = None
        current = asyncio.current_task()
        self._running.add(current)
        try:
            await self._callback()
        except Exception as e:
            logger.error("Debounced callback failed", error=str(e), exc_info=True)
        finally:
            self._running.discard(current)
