"""Repository protocol definitions for domain layer."""

from .activity import ActivityRepository
from .streak_state import StreakStateRepository
from .user import UserRepository

__all__ = [
    "ActivityRepository",
    "StreakStateRepository",
    "UserRepository",
]
