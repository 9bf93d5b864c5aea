"""
change_hub.py — Change notification channel
Per-(table, owner) edge-triggered signals. A signal only says "something in
this table changed for this owner, re-read now"; it never carries the row.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass

from config import REALTIME_QUEUE_SIZE

logger = logging.getLogger(__name__)

EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


@dataclass(frozen=True)
class ChangeSignal:
    table: str
    event: str


class Subscription:
    """One live listener. Must be created on the event loop that consumes it."""

    def __init__(self, hub: "ChangeHub", table: str, owner_id: str, queue_size: int):
        self.table = table
        self.owner_id = owner_id
        self.closed = False
        self._hub = hub
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(queue_size, 1))

    # ------------------------------------------------------------------
    def _call_on_loop(self, fn, *args):
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            fn(*args)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(fn, *args)

    def _deliver(self, signal: ChangeSignal | None):
        if self.closed and signal is not None:
            return
        try:
            self._queue.put_nowait(signal)
        except asyncio.QueueFull:
            # Coalesce: the queued signal already means "re-read"
            pass

    def notify(self, signal: ChangeSignal):
        self._call_on_loop(self._deliver, signal)

    # ------------------------------------------------------------------
    async def get(self) -> ChangeSignal | None:
        """Wait for the next signal. Returns None once the subscription is closed."""
        if self.closed:
            return None
        signal = await self._queue.get()
        if self.closed:
            return None
        return signal

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeSignal:
        signal = await self.get()
        if signal is None:
            raise StopAsyncIteration
        return signal

    def close(self):
        """Detach from the hub immediately. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._hub._remove(self)
        # Wake a consumer blocked in get()
        self._call_on_loop(self._deliver, None)


class ChangeHub:
    """In-process fan-out of change signals, keyed by (table, owner)."""

    def __init__(self, queue_size: int = REALTIME_QUEUE_SIZE):
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._subscriptions: dict[tuple[str, str], set[Subscription]] = {}

    def subscribe(self, table: str, owner_id: str) -> Subscription:
        sub = Subscription(self, table, owner_id, self._queue_size)
        with self._lock:
            self._subscriptions.setdefault((table, owner_id), set()).add(sub)
        logger.debug("subscribed to %s for %s", table, owner_id)
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            subs = self._subscriptions.get((sub.table, sub.owner_id))
            if subs is None:
                return
            subs.discard(sub)
            if not subs:
                del self._subscriptions[(sub.table, sub.owner_id)]
        logger.debug("unsubscribed from %s for %s", sub.table, sub.owner_id)

    def publish(self, table: str, owner_id: str, event: str) -> int:
        """Signal every subscription on (table, owner). Returns how many were signalled."""
        if event not in EVENT_TYPES:
            raise ValueError(f"Unknown change event: {event}")
        with self._lock:
            targets = list(self._subscriptions.get((table, owner_id), ()))
        signal = ChangeSignal(table=table, event=event)
        for sub in targets:
            sub.notify(signal)
        return len(targets)

    def subscriber_count(self, table: str | None = None, owner_id: str | None = None) -> int:
        with self._lock:
            return sum(
                len(subs)
                for (t, o), subs in self._subscriptions.items()
                if (table is None or t == table) and (owner_id is None or o == owner_id)
            )


# Shared by the record service and the realtime routes
change_hub = ChangeHub()
