"""Streak engine entry points used by application code.

``touch`` and ``recompute_all`` are the two public operations; both are
idempotent and may be called redundantly. ``record_login`` and
``record_food_day`` store the activity fact first and then touch.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..domain.repositories import ActivityRepository, StreakStateRepository, UserRepository
from ..exceptions import MissingUserContextError, UnknownActivityKindError
from ..logging_config import get_logger
from ..models.activity import ActivityKind
from ..models.streak_state import StreakSnapshot, StreakState
from .food_streak import FoodStreakUpdater
from .local_day import DEFAULT_TIMEZONE, Clock, LocalDayResolver, utc_now
from .login_streak import DEFAULT_WALK_LIMIT, LoginStreakRecomputer

logger = get_logger(__name__)


class StreakEngine:
    """Sequences row creation, the login walk and the food updater per user."""

    def __init__(
        self,
        users: UserRepository,
        activities: ActivityRepository,
        states: StreakStateRepository,
        *,
        clock: Clock = utc_now,
        default_timezone: str = DEFAULT_TIMEZONE,
        walk_limit: int = DEFAULT_WALK_LIMIT,
        write_attempts: int = 3,
    ):
        self.users = users
        self.activities = activities
        self.states = states
        self.clock = clock
        self.days = LocalDayResolver(users, clock, default_timezone)
        self.login = LoginStreakRecomputer(
            activities,
            states,
            self.days,
            walk_limit=walk_limit,
            write_attempts=write_attempts,
        )
        self.food = FoodStreakUpdater(activities, states, self.days, write_attempts=write_attempts)

    def require_user_id(self, user_id) -> int:
        """Return a known user id or raise before anything is written."""
        if user_id is None or (isinstance(user_id, str) and not user_id.strip()):
            raise MissingUserContextError()
        try:
            uid = int(user_id)
        except (TypeError, ValueError):
            raise MissingUserContextError(user_id) from None
        if self.users.get_by_id(uid) is None:
            raise MissingUserContextError(uid)
        return uid

    @contextmanager
    def _storage_errors(self, operation: str, user_id: int) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError:
            logger.exception(
                "Streak operation failed, nothing committed",
                extra={"operation": operation, "user_id": user_id},
            )
            raise

    def touch(self, user_id, kind: ActivityKind | str, event_date: Optional[date] = None) -> StreakState:
        """Bring one streak kind up to date after activity on ``event_date``."""
        try:
            activity_kind = ActivityKind.parse(kind)
        except ValueError:
            raise UnknownActivityKindError(kind) from None
        uid = self.require_user_id(user_id)

        with self._storage_errors(f"touch:{activity_kind.value}", uid):
            self.states.ensure_row(uid)
            if activity_kind is ActivityKind.LOGIN:
                return self.login.recompute(uid)
            return self.food.update(uid, event_date)

    def recompute_all(self, user_id) -> StreakState:
        """Refresh both streaks, e.g. after a long absence or from a nightly job."""
        uid = self.require_user_id(user_id)
        with self._storage_errors("recompute_all", uid):
            self.states.ensure_row(uid)
            self.login.recompute(uid)
            return self.food.update(uid, self.days.local_today(uid))

    def record_login(self, user_id) -> StreakState:
        """Store today's login (first/last seen) and recompute the login streak.

        Like ``record_food_day``, the activity and the streak commit separately.
        """
        uid = self.require_user_id(user_id)
        today = self.days.local_today(uid)
        with self._storage_errors("record_login", uid):
            self.activities.record(uid, ActivityKind.LOGIN, today, seen_at=self.clock())
        return self.touch(uid, ActivityKind.LOGIN, today)

    def record_food_day(self, user_id, entry_date: Optional[date] = None) -> StreakState:
        """Store a food-logged day (today by default) and update the food streak.

        The activity upsert and the streak write commit separately: if the
        streak write fails the fact stays stored, and calling again (or any
        later touch) brings the state up to date.
        """
        uid = self.require_user_id(user_id)
        entry_date = entry_date or self.days.local_today(uid)
        with self._storage_errors("record_food_day", uid):
            self.activities.record(uid, ActivityKind.FOOD, entry_date, seen_at=self.clock())
        return self.touch(uid, ActivityKind.FOOD, entry_date)

    def snapshot(self, user_id) -> StreakSnapshot:
        """Read-only view of the stored streaks; never writes."""
        uid = self.require_user_id(user_id)
        state = self.states.read(uid)
        if state is None:
            return StreakSnapshot.empty(uid)
        return StreakSnapshot.from_state(state)
