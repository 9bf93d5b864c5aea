"""
synchronizer.py — View Synchronizer
Holds one owner's ordered list of one entity type, keeps it in step with the
store: initial load, optimistic mutations with pre-image revert, and a full
re-read whenever the change feed fires.

Re-reads are sequenced: every load takes a ticket and a response is applied
only if no newer load has been applied already, so the last *issued* load
wins. Two rapid toggles on one record are NOT serialized; the store keeps
whichever write it saw last and the local list may disagree until the next
notification-triggered load.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Any

from sync.errors import RecordNotFoundError, StoreError, ValidationFailedError
from sync.feedback import SoundBoard, Toaster
from sync.store import ChangeFeed, FeedHandle, Store

logger = logging.getLogger(__name__)

GOAL_TYPES = ("yearly", "monthly")


class SyncState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class EntityKind:
    """How one entity type is scoped, ordered and validated."""

    table: str
    label: str
    order_by: str
    descending: bool = False
    date_column: str | None = None
    required: tuple[str, ...] = ("title",)
    completable: bool = True


TASKS = EntityKind(
    table="tasks",
    label="task",
    order_by="created_at",
    date_column="task_date",
    required=("title", "task_date"),
)
TIME_BLOCKS = EntityKind(
    table="time_blocks",
    label="time block",
    order_by="start_time",
    date_column="block_date",
    required=("title", "block_date", "start_time", "end_time"),
    completable=False,
)
GOALS = EntityKind(
    table="goals",
    label="goal",
    order_by="created_at",
    descending=True,
    required=("title", "goal_type"),
)
MILESTONES = EntityKind(
    table="milestones",
    label="milestone",
    order_by="created_at",
    descending=True,
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_fields(kind: EntityKind, fields: dict):
    """Structural checks only: required fields present, goal type known."""
    for name in kind.required:
        if _is_blank(fields.get(name)):
            raise ValidationFailedError(f"{name.replace('_', ' ').capitalize()} is required")
    if kind.table == "goals" and fields["goal_type"] not in GOAL_TYPES:
        raise ValidationFailedError(f"Goal type must be one of {', '.join(GOAL_TYPES)}")


def _jsonable(fields: dict) -> dict:
    return {
        key: value.isoformat() if isinstance(value, (date, time)) else value
        for key, value in fields.items()
    }


async def create_record(
    kind: EntityKind,
    store: Store,
    owner_id: str,
    fields: dict,
    toaster: Toaster,
    sounds: SoundBoard,
) -> bool:
    """Validate, stamp the owner, insert. Nothing is appended locally; the
    change feed brings the new row in. Blank optional values are sent as
    absent. `fields` is never modified."""
    row = _jsonable({k: v for k, v in fields.items() if not _is_blank(v)})
    try:
        validate_fields(kind, row)
    except ValidationFailedError as e:
        toaster.error(str(e))
        return False
    row["user_id"] = owner_id
    try:
        await store.insert(kind.table, row)
    except StoreError as e:
        logger.warning("insert into %s failed: %s", kind.table, e)
        toaster.error(f"Failed to add {kind.label}")
        return False
    sounds.add()
    toaster.success(f"{kind.label.capitalize()} added!")
    return True


class ViewSynchronizer:
    def __init__(
        self,
        kind: EntityKind,
        store: Store,
        feed: ChangeFeed,
        owner_id: str,
        day: date | None = None,
        toaster: Toaster | None = None,
        sounds: SoundBoard | None = None,
    ):
        if kind.date_column and day is None:
            raise ValueError(f"{kind.table} is scoped to a day; pass day=")
        self.kind = kind
        self.store = store
        self.feed = feed
        self.owner_id = owner_id
        self.day = day
        self.toaster = toaster or Toaster()
        self.sounds = sounds or SoundBoard()

        self.records: list[dict] = []
        self.state = SyncState.UNINITIALIZED
        self.last_error: StoreError | None = None

        self._issued = 0
        self._applied = 0
        self._handles: list[FeedHandle] = []
        self._closed = False

    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def filters(self) -> dict:
        filters = {"user_id": self.owner_id}
        if self.kind.date_column:
            filters[self.kind.date_column] = self.day.isoformat()
        return filters

    def get(self, record_id: str) -> dict | None:
        index = self._index_of(record_id)
        return None if index is None else self.records[index]

    def _index_of(self, record_id: str) -> int | None:
        for i, record in enumerate(self.records):
            if record.get("id") == record_id:
                return i
        return None

    def _replace(self, record_id: str, record: dict):
        self.records = [record if r.get("id") == record_id else r for r in self.records]

    def _fail(self, message: str, error: StoreError):
        self.last_error = error
        logger.warning("%s (%s): %s", message, self.kind.table, error)
        self.toaster.error(message)

    # ------------------------------------------------------------------
    async def mount(self):
        """Subscribe to changes for (table, owner), then do the initial load."""
        if self._closed:
            raise RuntimeError("synchronizer is closed")
        self._handles.append(self.feed.subscribe(self.kind.table, self.owner_id, self._on_change))
        await self.load()

    async def _on_change(self, event: str):
        if not self._closed:
            await self.load()

    def close(self):
        """Tear down every subscription now. Later responses are discarded."""
        if self._closed:
            return
        self._closed = True
        for handle in self._handles:
            handle.close()
        self._handles.clear()

    # ------------------------------------------------------------------
    async def load(self) -> bool:
        if self._closed:
            return False
        self._issued += 1
        ticket = self._issued
        if self.state is SyncState.UNINITIALIZED:
            self.state = SyncState.LOADING

        try:
            rows = await self.store.select(
                self.kind.table,
                filters=self.filters,
                order=(self.kind.order_by, self.kind.descending),
            )
        except StoreError as e:
            if self._closed:
                return False
            self._fail(f"Failed to load {self.kind.label}s", e)
            if self.state is SyncState.LOADING and ticket == self._issued:
                # Never populated: back to where we started, list stays empty
                self.state = SyncState.UNINITIALIZED
            return False

        if self._closed:
            logger.debug("discarding %s load after teardown", self.kind.table)
            return False
        if ticket <= self._applied:
            logger.debug("dropping stale %s load #%d (applied #%d)", self.kind.table, ticket, self._applied)
            return False
        self._applied = ticket
        self.records = list(rows)
        self.state = SyncState.READY
        self.last_error = None
        return True

    async def toggle_completion(self, record_id: str) -> bool:
        label = self.kind.label
        if not self.kind.completable:
            self.toaster.error(f"A {label} cannot be completed")
            return False
        index = self._index_of(record_id)
        if index is None:
            self._fail(f"Failed to update {label}", RecordNotFoundError(record_id))
            return False

        before = self.records[index]
        completed = not before.get("completed", False)
        self._replace(record_id, {**before, "completed": completed})
        if completed:
            self.sounds.complete()
        else:
            self.sounds.toggle()

        try:
            await self.store.update(self.kind.table, {"id": record_id}, {"completed": completed})
        except StoreError as e:
            if self._closed:
                return False
            self._replace(record_id, before)
            self._fail(f"Failed to update {label}", e)
            return False
        return True

    async def create(self, fields: dict) -> bool:
        fields = dict(fields)
        if self.kind.date_column and fields.get(self.kind.date_column) is None:
            fields[self.kind.date_column] = self.day
        return await create_record(self.kind, self.store, self.owner_id, fields, self.toaster, self.sounds)

    async def delete(self, record_id: str) -> bool:
        label = self.kind.label
        index = self._index_of(record_id)
        if index is None:
            self._fail(f"Failed to delete {label}", RecordNotFoundError(record_id))
            return False

        before = self.records[index]
        self.records = self.records[:index] + self.records[index + 1:]
        self.sounds.delete()

        try:
            await self.store.delete(self.kind.table, {"id": record_id})
        except StoreError as e:
            if self._closed:
                return False
            if self._index_of(record_id) is None:
                self.records = self.records[:index] + [before] + self.records[index:]
            self._fail(f"Failed to delete {label}", e)
            return False
        return True
