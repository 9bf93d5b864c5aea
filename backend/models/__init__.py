# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.user import User
from models.session import AuthSession
from models.profile import Profile
from models.task import Task
from models.time_block import TimeBlock
from models.goal import Goal
from models.milestone import Milestone

# Tables reachable through the record API, keyed by table name
TABLES = {
    "profiles": Profile,
    "tasks": Task,
    "time_blocks": TimeBlock,
    "goals": Goal,
    "milestones": Milestone,
}

# Owned tables, in the order an account deletion cascades through them
OWNED_TABLES = ("profiles", "tasks", "time_blocks", "goals", "milestones")

__all__ = [
    "User",
    "AuthSession",
    "Profile",
    "Task",
    "TimeBlock",
    "Goal",
    "Milestone",
    "TABLES",
    "OWNED_TABLES",
]
