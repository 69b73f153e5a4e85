"""SQLModel table exports."""

from .activity import ActivityDay, ActivityKind
from .streak_state import EPOCH_FLOOR, StreakRun, StreakSnapshot, StreakState
from .user import User

__all__ = [
    "ActivityDay",
    "ActivityKind",
    "EPOCH_FLOOR",
    "StreakRun",
    "StreakSnapshot",
    "StreakState",
    "User",
]
