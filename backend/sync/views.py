"""
views.py — The three dashboard views and the add-item composer.

Each view owns its synchronizers. Nothing is shared between views; switching
views closes the old one (tearing down its subscriptions) before the new one
mounts.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, time

from sync.errors import StoreError
from sync.feedback import SoundBoard, Toaster
from sync.store import ChangeFeed, Store
from sync.synchronizer import (
    GOAL_TYPES,
    GOALS,
    MILESTONES,
    TASKS,
    TIME_BLOCKS,
    ViewSynchronizer,
    create_record,
)

logger = logging.getLogger(__name__)

VIEW_NAMES = ("today", "goals", "milestones")


# ── Field builders ────────────────────────────────────────────────
def task_fields(title: str, day: date, alarm_time: time | str | None = None) -> dict:
    return {"title": title, "task_date": day, "alarm_time": alarm_time}


def time_block_fields(title, day: date, start_time, end_time, description: str | None = None) -> dict:
    return {
        "title": title,
        "block_date": day,
        "start_time": start_time,
        "end_time": end_time,
        "description": description,
    }


def goal_fields(title, goal_type: str = "yearly", description=None, target_date=None) -> dict:
    return {"title": title, "goal_type": goal_type, "description": description, "target_date": target_date}


def milestone_fields(title, description=None, target_date=None, goal_id: str | None = None) -> dict:
    return {"title": title, "description": description, "target_date": target_date, "goal_id": goal_id}


class _View:
    name = ""

    def __init__(self, store: Store, feed: ChangeFeed, owner_id: str, toaster: Toaster, sounds: SoundBoard):
        self.store = store
        self.feed = feed
        self.owner_id = owner_id
        self.toaster = toaster
        self.sounds = sounds

    def _sync(self, kind, day: date | None = None) -> ViewSynchronizer:
        return ViewSynchronizer(kind, self.store, self.feed, self.owner_id, day=day, toaster=self.toaster, sounds=self.sounds)

    @property
    def synchronizers(self) -> list[ViewSynchronizer]:
        raise NotImplementedError

    async def mount(self):
        await asyncio.gather(*(s.mount() for s in self.synchronizers))

    def close(self):
        for s in self.synchronizers:
            s.close()


class TodayView(_View):
    name = "today"

    def __init__(self, store, feed, owner_id, today: date, toaster, sounds):
        super().__init__(store, feed, owner_id, toaster, sounds)
        self.today = today
        self.tasks = self._sync(TASKS, day=today)
        self.time_blocks = self._sync(TIME_BLOCKS, day=today)

    @property
    def synchronizers(self):
        return [self.tasks, self.time_blocks]

    async def toggle_task(self, task_id: str) -> bool:
        return await self.tasks.toggle_completion(task_id)

    async def add_task(self, title: str, alarm_time=None) -> bool:
        return await self.tasks.create(task_fields(title, self.today, alarm_time))

    async def add_time_block(self, title: str, start_time, end_time, description=None) -> bool:
        return await self.time_blocks.create(time_block_fields(title, self.today, start_time, end_time, description))


class GoalsView(_View):
    name = "goals"

    def __init__(self, store, feed, owner_id, toaster, sounds):
        super().__init__(store, feed, owner_id, toaster, sounds)
        self.goals = self._sync(GOALS)
        self.active_tab = "yearly"

    @property
    def synchronizers(self):
        return [self.goals]

    def set_tab(self, tab: str):
        if tab not in GOAL_TYPES:
            raise ValueError(f"Unknown goal tab: {tab}")
        self.active_tab = tab

    def visible(self) -> list[dict]:
        return [g for g in self.goals.records if g.get("goal_type") == self.active_tab]

    async def toggle_goal(self, goal_id: str) -> bool:
        return await self.goals.toggle_completion(goal_id)

    async def add_goal(self, title: str, goal_type: str = "yearly", description=None, target_date=None) -> bool:
        return await self.goals.create(goal_fields(title, goal_type, description, target_date))


class MilestonesView(_View):
    name = "milestones"

    def __init__(self, store, feed, owner_id, toaster, sounds):
        super().__init__(store, feed, owner_id, toaster, sounds)
        self.milestones = self._sync(MILESTONES)
        # Reference data for goal titles; read-only from this view
        self.goals = self._sync(GOALS)

    @property
    def synchronizers(self):
        return [self.milestones, self.goals]

    def goal_title(self, milestone: dict) -> str | None:
        goal_id = milestone.get("goal_id")
        if goal_id is None:
            return None
        goal = self.goals.get(goal_id)
        return goal["title"] if goal else None

    async def toggle_milestone(self, milestone_id: str) -> bool:
        return await self.milestones.toggle_completion(milestone_id)

    async def add_milestone(self, title: str, description=None, target_date=None, goal_id=None) -> bool:
        return await self.milestones.create(milestone_fields(title, description, target_date, goal_id))


class ItemComposer:
    """The add-item dialog: creates any kind of item whichever view is showing."""

    def __init__(self, store: Store, owner_id: str, today: date, toaster: Toaster, sounds: SoundBoard):
        self.store = store
        self.owner_id = owner_id
        self.today = today
        self.toaster = toaster
        self.sounds = sounds

    async def _create(self, kind, fields: dict) -> bool:
        return await create_record(kind, self.store, self.owner_id, fields, self.toaster, self.sounds)

    async def add_task(self, title: str, alarm_time=None) -> bool:
        return await self._create(TASKS, task_fields(title, self.today, alarm_time))

    async def add_time_block(self, title: str, start_time, end_time, description=None) -> bool:
        return await self._create(TIME_BLOCKS, time_block_fields(title, self.today, start_time, end_time, description))

    async def add_goal(self, title: str, goal_type: str = "yearly", description=None, target_date=None) -> bool:
        return await self._create(GOALS, goal_fields(title, goal_type, description, target_date))

    async def add_milestone(self, title: str, description=None, target_date=None, goal_id=None) -> bool:
        return await self._create(MILESTONES, milestone_fields(title, description, target_date, goal_id))


class Dashboard:
    """Shows one view at a time. Starts on Today."""

    def __init__(
        self,
        store: Store,
        feed: ChangeFeed,
        owner_id: str,
        today: date | None = None,
        toaster: Toaster | None = None,
        sounds: SoundBoard | None = None,
    ):
        self.store = store
        self.feed = feed
        self.owner_id = owner_id
        self.today = today or date.today()
        self.toaster = toaster or Toaster()
        self.sounds = sounds or SoundBoard()
        self.composer = ItemComposer(store, owner_id, self.today, self.toaster, self.sounds)
        self.active: _View | None = None
        self.signed_out = False

    @property
    def active_view(self) -> str | None:
        return self.active.name if self.active else None

    def _build(self, name: str) -> _View:
        if name == "today":
            return TodayView(self.store, self.feed, self.owner_id, self.today, self.toaster, self.sounds)
        if name == "goals":
            return GoalsView(self.store, self.feed, self.owner_id, self.toaster, self.sounds)
        if name == "milestones":
            return MilestonesView(self.store, self.feed, self.owner_id, self.toaster, self.sounds)
        raise ValueError(f"Unknown view: {name}")

    async def switch(self, name: str) -> _View:
        if self.signed_out:
            raise RuntimeError("Signed out")
        if name not in VIEW_NAMES:
            raise ValueError(f"Unknown view: {name}")
        if self.active is not None and self.active.name == name:
            return self.active
        if self.active is not None:
            self.active.close()
        self.active = self._build(name)
        logger.debug("switched to %s view", name)
        await self.active.mount()
        return self.active

    def close(self):
        if self.active is not None:
            self.active.close()
            self.active = None

    async def sign_out(self) -> bool:
        """Close the showing view, then end the session with the store.

        The view is torn down first, so no callback fires after this returns
        even if the server call fails.
        """
        self.close()
        self.signed_out = True
        try:
            await self.store.sign_out()
        except StoreError as e:
            logger.warning("sign-out failed: %s", e)
            self.toaster.error("Failed to sign out")
            return False
        return True
