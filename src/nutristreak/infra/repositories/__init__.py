"""Concrete repository implementations using SQLModel."""

from .activity import SQLModelActivityRepository
from .streak_state import SQLModelStreakStateRepository
from .user import SQLModelUserRepository

__all__ = [
    "SQLModelActivityRepository",
    "SQLModelStreakStateRepository",
    "SQLModelUserRepository",
]
