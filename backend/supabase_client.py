# supabase_client.py — Hosted Supabase store and realtime feed

import asyncio
import logging
import uuid

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from config import SUPABASE_URL, SUPABASE_ANON_KEY
from sync.errors import PolicyDeniedError, RecordNotFoundError, StoreError, TransientNetworkError
from sync.feeds import dispatch_change

logger = logging.getLogger(__name__)

# Global hosted client instance
_hosted_client: AsyncClient = None


def is_supabase_configured() -> bool:
    """Check if the hosted project URL and anon key are set."""
    return bool(SUPABASE_URL and SUPABASE_ANON_KEY)


async def create_hosted_client() -> AsyncClient:
    """
    Get the async Supabase client with the anonymous key.
    Row-level security on the hosted project enforces the owner predicate
    once a user session is set.
    """
    global _hosted_client

    if _hosted_client is None:
        if not is_supabase_configured():
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment variables")

        _hosted_client = await acreate_client(SUPABASE_URL, SUPABASE_ANON_KEY)

    return _hosted_client


# Authentication helpers
async def sign_up_user(client: AsyncClient, email: str, password: str, full_name: str = None):
    """Register a new user with Supabase Auth. The profile row is created by the database hook."""
    return await client.auth.sign_up({
        "email": email,
        "password": password,
        "options": {
            "data": {"full_name": full_name or ""}
        }
    })


async def sign_in_user(client: AsyncClient, email: str, password: str):
    """Sign in a user with Supabase Auth."""
    return await client.auth.sign_in_with_password({
        "email": email,
        "password": password
    })


def _translate(error: APIError, table: str) -> StoreError:
    code = str(error.code or "")
    # 42501 is Postgres insufficient_privilege; PGRST3xx are JWT errors
    if code == "42501" or code.startswith("PGRST3"):
        return PolicyDeniedError()
    return StoreError(f"{table}: {error.message}")


class SupabaseStore:
    """Store operations through postgrest on a hosted project."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @staticmethod
    def _apply_filters(query, filters: dict | None):
        for key, value in (filters or {}).items():
            if value is None:
                query = query.is_(key, "null")
            else:
                query = query.eq(key, value)
        return query

    async def _execute(self, query, table: str) -> list:
        try:
            response = await query.execute()
        except APIError as e:
            raise _translate(e, table) from e
        except httpx.TransportError as e:
            logger.warning("supabase request on %s failed: %s", table, e)
            raise TransientNetworkError(f"{table}: {e.__class__.__name__}") from e
        return response.data or []

    async def select(self, table: str, filters: dict = None, order=None, columns: str = "*") -> list[dict]:
        query = self._apply_filters(self.client.table(table).select(columns), filters)
        if order:
            column, descending = order
            query = query.order(column, desc=descending)
        return await self._execute(query, table)

    async def insert(self, table: str, row: dict) -> dict:
        result = await self._execute(self.client.table(table).insert(row), table)
        return result[0] if result else {}

    async def update(self, table: str, filters: dict, delta: dict) -> list[dict]:
        query = self._apply_filters(self.client.table(table).update(delta), filters)
        result = await self._execute(query, table)
        if not result:
            raise RecordNotFoundError(f"{table}: no matching row")
        return result

    async def delete(self, table: str, filters: dict) -> list[dict]:
        query = self._apply_filters(self.client.table(table).delete(), filters)
        result = await self._execute(query, table)
        if not result:
            raise RecordNotFoundError(f"{table}: no matching row")
        return result

    async def sign_out(self):
        try:
            await self.client.auth.sign_out()
        except httpx.TransportError as e:
            raise TransientNetworkError(f"logout: {e.__class__.__name__}") from e


def _event_of(payload) -> str:
    if isinstance(payload, dict):
        data = payload.get("data", payload)
        return str(data.get("type") or data.get("eventType") or "*")
    return "*"


class _ChannelHandle:
    def __init__(self, feed: "SupabaseFeed", channel):
        self.closed = False
        self._feed = feed
        self._channel = channel

    def close(self):
        if self.closed:
            return
        self.closed = True
        # Callbacks are already gated by `closed`; the unsubscribe itself is async
        self._feed._spawn(self._feed.client.remove_channel(self._channel), self._channel)


class SupabaseFeed:
    """postgres_changes subscriptions filtered to one owner.

    Every subscription gets its own channel name: the realtime client keys
    channels by topic, so a shared name would let one view's teardown remove
    another view's live channel.
    """

    def __init__(self, client: AsyncClient):
        self.client = client
        self._tasks: set[asyncio.Task] = set()

    def _spawn(self, coro, channel) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._reap(t, channel))
        return task

    def _reap(self, task: asyncio.Task, channel):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("realtime channel %s: %s", getattr(channel, "topic", channel), task.exception())

    def subscribe(self, table: str, owner_id: str, on_change) -> _ChannelHandle:
        channel = self.client.channel(f"{table}-{owner_id}-{uuid.uuid4()}")
        handle = _ChannelHandle(self, channel)

        def callback(payload):
            if handle.closed:
                return
            self._spawn(dispatch_change(on_change, _event_of(payload), table), channel)

        channel.on_postgres_changes(
            "*",
            callback,
            table=table,
            schema="public",
            filter=f"user_id=eq.{owner_id}",
        )
        self._spawn(channel.subscribe(), channel)
        return handle
