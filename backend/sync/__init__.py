from sync.errors import (
    StoreError,
    PolicyDeniedError,
    TransientNetworkError,
    RecordNotFoundError,
    ValidationFailedError,
)
from sync.feedback import Toaster, SoundBoard
from sync.synchronizer import (
    EntityKind,
    SyncState,
    ViewSynchronizer,
    TASKS,
    TIME_BLOCKS,
    GOALS,
    MILESTONES,
)
from sync.views import Dashboard, TodayView, GoalsView, MilestonesView, ItemComposer

__all__ = [
    "StoreError",
    "PolicyDeniedError",
    "TransientNetworkError",
    "RecordNotFoundError",
    "ValidationFailedError",
    "Toaster",
    "SoundBoard",
    "EntityKind",
    "SyncState",
    "ViewSynchronizer",
    "TASKS",
    "TIME_BLOCKS",
    "GOALS",
    "MILESTONES",
    "Dashboard",
    "TodayView",
    "GoalsView",
    "MilestonesView",
    "ItemComposer",
]
