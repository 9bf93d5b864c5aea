"""
Shared fixtures.

The engine is created at import time from DATABASE_URL, so the in-memory
database has to be selected before any backend module is imported.
"""

import asyncio
import os
import sys
from collections import defaultdict, deque
from datetime import date

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

BACKEND_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend")
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import pytest

from database import SessionLocal, drop_db, init_db
from services.account_service import AccountService
from services.change_hub import ChangeHub
from sync.errors import RecordNotFoundError
from sync.feedback import SoundBoard, Toaster
from sync.feeds import HubFeed

TODAY = date(2025, 3, 14)


@pytest.fixture(autouse=True)
def fresh_database():
    drop_db()
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(email: str, password: str = "secret123", full_name: str = ""):
        return AccountService.sign_up(db, email, password, {"full_name": full_name})
    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice@example.com", full_name="Alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", full_name="Bob")


async def eventually(predicate, timeout: float = 1.0):
    """Poll until predicate() is truthy, letting background tasks run."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class FakeStore:
    """In-memory Store that can fail or stall individual calls.

    Rows are kept as JSON-shaped dicts, the way a remote store returns them.
    When a hub is given, every successful write publishes on it.
    """

    def __init__(self, hub: ChangeHub | None = None):
        self.hub = hub
        self.tables: dict[str, list[dict]] = defaultdict(list)
        self.calls: list[tuple] = []
        self._failures: dict[str, deque] = defaultdict(deque)
        self._select_gates: deque[asyncio.Event] = deque()
        self._seq = 0

    # ── Test controls ─────────────────────────────────────────────
    def fail_next(self, operation: str, error: Exception):
        self._failures[operation].append(error)

    def hold_next_select(self) -> asyncio.Event:
        """The next select snapshots its result, then waits for the returned event."""
        gate = asyncio.Event()
        self._select_gates.append(gate)
        return gate

    def seed(self, table: str, **fields) -> dict:
        self._seq += 1
        row = {"id": f"{table}-{self._seq}", "created_at": f"2025-01-01T00:00:{self._seq:02d}+00:00", "completed": False}
        row.update(fields)
        self.tables[table].append(row)
        return row

    def calls_to(self, operation: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == operation]

    # ── Store ─────────────────────────────────────────────────────
    def _raise_if_failing(self, operation: str):
        if self._failures[operation]:
            raise self._failures[operation].popleft()

    @staticmethod
    def _matches(row: dict, filters: dict | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    def _publish(self, table: str, owner_id: str, event: str):
        if self.hub is not None:
            self.hub.publish(table, owner_id, event)

    async def select(self, table, filters=None, order=None, columns="*"):
        self.calls.append(("select", table, dict(filters or {})))
        gate = self._select_gates.popleft() if self._select_gates else None
        self._raise_if_failing("select")
        rows = [dict(r) for r in self.tables[table] if self._matches(r, filters)]
        if order:
            column, descending = order
            rows.sort(key=lambda r: r.get(column) or "", reverse=descending)
        if gate is not None:
            await gate.wait()
        return rows

    async def insert(self, table, row):
        self.calls.append(("insert", table, dict(row)))
        self._raise_if_failing("insert")
        created = self.seed(table, **row)
        self._publish(table, row["user_id"], "INSERT")
        return dict(created)

    async def update(self, table, filters, delta):
        self.calls.append(("update", table, dict(filters), dict(delta)))
        self._raise_if_failing("update")
        rows = [r for r in self.tables[table] if self._matches(r, filters)]
        if not rows:
            raise RecordNotFoundError(f"{table}: no matching row")
        for row in rows:
            row.update(delta)
        self._publish(table, rows[0]["user_id"], "UPDATE")
        return [dict(r) for r in rows]

    async def delete(self, table, filters):
        self.calls.append(("delete", table, dict(filters)))
        self._raise_if_failing("delete")
        rows = [r for r in self.tables[table] if self._matches(r, filters)]
        if not rows:
            raise RecordNotFoundError(f"{table}: no matching row")
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, filters)]
        self._publish(table, rows[0]["user_id"], "DELETE")
        return rows

    async def sign_out(self):
        self.calls.append(("sign_out",))
        self._raise_if_failing("sign_out")


@pytest.fixture
def hub():
    return ChangeHub(queue_size=1)


@pytest.fixture
def store(hub):
    return FakeStore(hub)


@pytest.fixture
def feed(hub):
    return HubFeed(hub)


@pytest.fixture
def toaster():
    return Toaster()


@pytest.fixture
def sounds():
    return SoundBoard()
