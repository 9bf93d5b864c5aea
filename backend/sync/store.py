"""
Interfaces the synchronizer depends on.

A Store is the query surface (scoped select / insert / update / delete) plus
sign-out of the identity it acts as; a ChangeFeed hands out edge-triggered
subscriptions. Both have an HTTP implementation, a hosted-platform
implementation and an in-process one.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol

# Called with the event name ("INSERT", "UPDATE", "DELETE", or "*").
ChangeCallback = Callable[[str], Awaitable[None]]

# (column, descending)
Order = tuple[str, bool]


class Store(Protocol):
    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order: Order | None = None,
        columns: str = "*",
    ) -> list[dict]: ...

    async def insert(self, table: str, row: dict) -> dict: ...

    async def update(self, table: str, filters: dict[str, Any], delta: dict) -> list[dict]: ...

    async def delete(self, table: str, filters: dict[str, Any]) -> list[dict]: ...

    async def sign_out(self) -> None: ...


class FeedHandle(Protocol):
    closed: bool

    def close(self) -> None: ...


class ChangeFeed(Protocol):
    def subscribe(self, table: str, owner_id: str, on_change: ChangeCallback) -> FeedHandle: ...


class TaskHandle:
    """Feed handle backed by a listener task. close() is synchronous."""

    def __init__(self, task: asyncio.Task, on_close: Callable[[], None] | None = None):
        self.closed = False
        self._task = task
        self._on_close = on_close

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()
        self._task.cancel()
