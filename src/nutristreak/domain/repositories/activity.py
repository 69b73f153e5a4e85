"""Activity presence protocol."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ...models.activity import ActivityDay, ActivityKind


class ActivityRepository(Protocol):
    """Answers whether a qualifying activity exists for a user on a day."""

    def has_activity(self, user_id: int, kind: ActivityKind, day: date) -> bool:
        """Point lookup for one (user, day, kind)."""
        ...

    def record(
        self,
        user_id: int,
        kind: ActivityKind,
        day: date,
        *,
        seen_at: Optional[datetime] = None,
    ) -> ActivityDay:
        """Insert the activity or refresh its last-seen timestamp."""
        ...
