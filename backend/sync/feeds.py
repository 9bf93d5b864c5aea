"""
Change feeds for the synchronizer.

HubFeed listens on an in-process ChangeHub (embedded mode and tests);
SseFeed listens on the backend's /realtime/v1 event stream. Both deliver
only the event name; receivers must re-read.
"""
import asyncio
import logging
from typing import AsyncIterator

import httpx

from config import MOMENTUM_API_URL
from services.change_hub import ChangeHub, Subscription
from sync.store import ChangeCallback, TaskHandle

logger = logging.getLogger(__name__)


async def dispatch_change(on_change: ChangeCallback, event: str, table: str):
    try:
        await on_change(event)
    except Exception:
        # Keep the listener alive; one bad callback must not end the feed
        logger.exception("change callback for %s failed", table)


class HubFeed:
    def __init__(self, hub: ChangeHub):
        self._hub = hub

    def subscribe(self, table: str, owner_id: str, on_change: ChangeCallback) -> TaskHandle:
        subscription = self._hub.subscribe(table, owner_id)
        task = asyncio.get_running_loop().create_task(self._pump(subscription, on_change))
        return TaskHandle(task, on_close=subscription.close)

    @staticmethod
    async def _pump(subscription: Subscription, on_change: ChangeCallback):
        async for signal in subscription:
            await dispatch_change(on_change, signal.event, signal.table)


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Yield the `event:` name of each server-sent event; comments are skipped."""
    event = None
    async for line in lines:
        if not line:
            if event is not None:
                yield event
            event = None
        elif line.startswith(":"):
            continue
        elif line.startswith("event:"):
            event = line[len("event:"):].strip()


class SseFeed:
    """Listens on GET /realtime/v1/{table}. No automatic reconnect."""

    def __init__(self, access_token: str, base_url: str = MOMENTUM_API_URL, client: httpx.AsyncClient | None = None):
        self.access_token = access_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url)

    def subscribe(self, table: str, owner_id: str, on_change: ChangeCallback) -> TaskHandle:
        task = asyncio.get_running_loop().create_task(self._listen(table, owner_id, on_change))
        return TaskHandle(task)

    async def _listen(self, table: str, owner_id: str, on_change: ChangeCallback):
        headers = {"Authorization": f"Bearer {self.access_token}", "Accept": "text/event-stream"}
        params = {"filter": f"user_id=eq.{owner_id}"}
        try:
            async with self._client.stream(
                "GET", f"/realtime/v1/{table}", params=params, headers=headers, timeout=None
            ) as resp:
                if resp.status_code != 200:
                    logger.warning("realtime subscribe to %s refused (%s)", table, resp.status_code)
                    return
                async for event in iter_sse_events(resp.aiter_lines()):
                    if event == "SUBSCRIBED":
                        continue
                    await dispatch_change(on_change, event, table)
        except httpx.HTTPError as e:
            logger.warning("realtime stream for %s ended: %s", table, e)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
