"""Streak state repository protocol."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol

from ...models.streak_state import StreakState


class StreakStateRepository(Protocol):
    """Persisted per-user streak row with lazy creation."""

    def ensure_row(self, user_id: int) -> bool:
        """Create a zero-valued row if none exists; True when inserted."""
        ...

    def read(self, user_id: int) -> Optional[StreakState]:
        """Return the row or None."""
        ...

    def write(
        self,
        user_id: int,
        fields: Mapping[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> StreakState:
        """Merge fields into the row and stamp recompute timestamps."""
        ...

    def update(
        self,
        user_id: int,
        compute: Callable[[StreakState], Mapping[str, Any]],
        *,
        attempts: int = 3,
    ) -> StreakState:
        """Read-compute-write cycle serialized against concurrent writers."""
        ...

    def list_user_ids(self) -> list[int]:
        """Ids of every user with a streak row."""
        ...
