"""Live-update subscription with first-class pause/resume.

While a device writes to the shared record its own change comes back through
the live-update channel. Pushes therefore run inside a pause window: events
arriving meanwhile are withheld, and after the push settles the caller runs a
single coalesced pull instead of replaying them.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

import structlog

from .store import OnChange, RemoteStore, Unsubscribe

logger = structlog.get_logger(__name__)


@dataclass
class PauseWindow:
    """Outcome of one pause window, filled in when the window closes."""

    withheld_events: int = 0

    @property
    def needs_pull(self) -> bool:
        """Check if events arrived while paused."""
        return self.withheld_events > 0


class PausableSubscription:
    """Cancellable event stream over a store subscription.

    Pauses nest; events are delivered again only when the outermost pause
    ends.
    """

    def __init__(self, store: RemoteStore, code: str, handler: OnChange):
        """Initialize the subscription (not yet open).

        Args:
            store: Remote store to subscribe to.
            code: Access code to watch.
            handler: Called with each delivered record.
        """
        self.code = code
        self._store = store
        self._handler = handler
        self._unsubscribe: Optional[Unsubscribe] = None
        self._pause_depth = 0
        self._withheld = 0
        self._closed = False

    @property
    def is_open(self) -> bool:
        """Check if the underlying subscription is live."""
        return self._unsubscribe is not None

    @property
    def is_paused(self) -> bool:
        """Check if events are currently withheld."""
        return self._pause_depth > 0

    def open(self) -> "PausableSubscription":
        """Subscribe to the store. No-op for stores without live updates."""
        if self._closed:
            raise RuntimeError("Subscription already closed")
        if self._unsubscribe is None and self._store.supports_subscriptions:
            self._unsubscribe = self._store.subscribe(self.code, self._on_event)
            logger.debug("Subscription opened", access_code=self.code)
        return self

    def close(self) -> None:
        """Dispose of the underlying subscription. Idempotent."""
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.debug("Subscription closed", access_code=self.code)

    def pause(self) -> None:
        """Start withholding events."""
        self._pause_depth += 1

    def resume(self) -> int:
        """End one pause level.

        Returns:
            Number of events withheld, reported only when the outermost
            pause ends (0 otherwise).
        """
        if self._pause_depth == 0:
            return 0
        self._pause_depth -= 1
        if self._pause_depth > 0:
            return 0
        withheld, self._withheld = self._withheld, 0
        return withheld

    @contextmanager
    def paused(self) -> Iterator[PauseWindow]:
        """Withhold events for the duration of the block.

        Example:
            with subscription.paused() as window:
                await client.push(...)
            if window.needs_pull:
                await engine.pull()
        """
        window = PauseWindow()
        self.pause()
        try:
            yield window
        finally:
            window.withheld_events = self.resume()

    def _on_event(self, record: Optional[dict]) -> None:
        if self._closed:
            return
        if self._pause_depth > 0:
            self._withheld += 1
            logger.debug("Withholding event during pause", access_code=self.code)
            return
        self._handler(record)
