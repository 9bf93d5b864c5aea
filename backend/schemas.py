"""
schemas.py — Request payloads for the record API.
One create/update pair per table; unknown fields are rejected.
"""
from datetime import date, time
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class _Patch(_Payload):
    """A partial update. Fields named in `not_null` may be omitted but not nulled."""

    not_null: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulled = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulled:
            raise ValueError(f"{', '.join(nulled)} may not be null")
        return self


# ── Profiles ──────────────────────────────────────────────────────
class ProfileCreate(_Payload):
    id: str
    full_name: str = ""


class ProfileUpdate(_Patch):
    not_null = ("full_name",)

    full_name: Optional[str] = None


# ── Tasks ─────────────────────────────────────────────────────────
class TaskCreate(_Payload):
    user_id: str
    title: str = Field(min_length=1)
    task_date: date
    alarm_time: Optional[time] = None
    completed: bool = False


class TaskUpdate(_Patch):
    not_null = ("user_id", "title", "task_date", "completed")

    user_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1)
    task_date: Optional[date] = None
    alarm_time: Optional[time] = None
    completed: Optional[bool] = None


# ── Time blocks ───────────────────────────────────────────────────
class TimeBlockCreate(_Payload):
    user_id: str
    title: str = Field(min_length=1)
    block_date: date
    start_time: time
    end_time: time
    description: Optional[str] = None


class TimeBlockUpdate(_Patch):
    not_null = ("user_id", "title", "block_date", "start_time", "end_time")

    user_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1)
    block_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    description: Optional[str] = None


# ── Goals ─────────────────────────────────────────────────────────
class GoalCreate(_Payload):
    user_id: str
    title: str = Field(min_length=1)
    description: Optional[str] = None
    goal_type: Literal["yearly", "monthly"]
    target_date: Optional[date] = None
    completed: bool = False


class GoalUpdate(_Patch):
    not_null = ("user_id", "title", "goal_type", "completed")

    user_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    goal_type: Optional[Literal["yearly", "monthly"]] = None
    target_date: Optional[date] = None
    completed: Optional[bool] = None


# ── Milestones ────────────────────────────────────────────────────
class MilestoneCreate(_Payload):
    user_id: str
    title: str = Field(min_length=1)
    description: Optional[str] = None
    goal_id: Optional[str] = None
    target_date: Optional[date] = None
    completed: bool = False


class MilestoneUpdate(_Patch):
    not_null = ("user_id", "title", "completed")

    user_id: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    goal_id: Optional[str] = None
    target_date: Optional[date] = None
    completed: Optional[bool] = None


CREATE_SCHEMAS = {
    "profiles": ProfileCreate,
    "tasks": TaskCreate,
    "time_blocks": TimeBlockCreate,
    "goals": GoalCreate,
    "milestones": MilestoneCreate,
}

UPDATE_SCHEMAS = {
    "profiles": ProfileUpdate,
    "tasks": TaskUpdate,
    "time_blocks": TimeBlockUpdate,
    "goals": GoalUpdate,
    "milestones": MilestoneUpdate,
}


# ── Auth ──────────────────────────────────────────────────────────
class SignUpRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    data: dict = Field(default_factory=dict)


class SignInRequest(BaseModel):
    email: str
    password: str
