"""BroadcastHub — fan-out of committed tracking events to connected viewers."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from parade_tracker.tracking.models import LOCATION, TrackingEvent, location_event, state_event
from parade_tracker.tracking.store import LocationStore

_logger = logging.getLogger(__name__)


class Subscription:
    """Per-viewer event queue living on one event loop.

    Events may be delivered from any thread; they are handed to the owning
    loop in arrival order.  When more than *maxsize* events are waiting the
    oldest ``location`` event is discarded first, since a newer fix
    supersedes it; ``state`` and ``reset`` events are only dropped when
    nothing else is left to drop.

    Parameters
    ----------
    loop:
        The loop the consumer awaits on.
    maxsize:
        Maximum number of buffered events.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int = 100) -> None:
        self._loop = loop
        self._maxsize = maxsize
        self._items: deque[TrackingEvent] = deque()
        self._ready = asyncio.Event()
        self.dropped = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def deliver(self, event: TrackingEvent) -> None:
        """Thread-safe: schedule *event* onto the owning loop."""
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._enqueue, event)

    async def get(self) -> TrackingEvent:
        """Wait for and return the next event."""
        while not self._items:
            self._ready.clear()
            await self._ready.wait()
        return self._items.popleft()

    def get_nowait(self) -> TrackingEvent | None:
        """Return the next event, or None if none is buffered."""
        return self._items.popleft() if self._items else None

    def pending(self) -> int:
        return len(self._items)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _enqueue(self, event: TrackingEvent) -> None:
        if len(self._items) >= self._maxsize:
            self._drop_one()
        self._items.append(event)
        self._ready.set()

    def _drop_one(self) -> None:
        for i, item in enumerate(self._items):
            if item.kind == LOCATION:
                del self._items[i]
                break
        else:
            self._items.popleft()
        self.dropped += 1


class BroadcastHub:
    """Registry of viewer subscriptions fed by a :class:`LocationStore`.

    Each subscription starts with the store as it was at the instant of
    subscribing: a ``state`` event, then a ``location`` event carrying the
    current fix if there is one.  Every later committed event follows.

    Parameters
    ----------
    store:
        The store whose events are broadcast.
    queue_maxsize:
        Buffer size for each subscription.
    """

    def __init__(self, store: LocationStore, queue_maxsize: int = 100) -> None:
        self._store = store
        self._queue_maxsize = queue_maxsize
        self._subscriptions: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Create a subscription bound to the running event loop.

        Must be called from a coroutine on the consumer's loop so that the
        snapshot is queued ahead of any event delivered afterwards.
        """
        sub = Subscription(asyncio.get_running_loop(), self._queue_maxsize)
        snapshot = self._store.add_listener(sub.deliver)
        sub._enqueue(state_event(snapshot))
        if snapshot.fix is not None:
            sub._enqueue(location_event(snapshot.fix))
        self._subscriptions.add(sub)
        _logger.debug("Viewer subscribed (%d total)", len(self._subscriptions))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._store.remove_listener(sub.deliver)
        self._subscriptions.discard(sub)
        _logger.debug("Viewer unsubscribed (%d total)", len(self._subscriptions))

    def close(self) -> None:
        """Detach every subscription from the store."""
        for sub in list(self._subscriptions):
            self.unsubscribe(sub)
