"""Food streak: incremental watermark + grace-window updater.

A long streak must not cost a history rescan on every touch. The state keeps
a *floor* date below which history is settled, and tolerates missing days
inside a short grace window so late logging does not break the run.

Each update does exactly ``GRACE_WINDOW_DAYS + 1`` point lookups:

* the grace window: ``today``, ``today - 1``, ``today - 2``
* the grace boundary: ``today - 3``

The floor only moves forward, and only when the boundary day has passed the
window without activity (a confirmed break).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from ..domain.repositories import ActivityRepository, StreakStateRepository
from ..logging_config import get_logger
from ..models.activity import ActivityKind
from ..models.streak_state import EPOCH_FLOOR, StreakState
from .local_day import LocalDayResolver

logger = get_logger(__name__)

GRACE_WINDOW_DAYS = 3


class StreakPhase(str, Enum):
    """Where the food streak stands after an update."""

    ACTIVE = "active"
    ON_HOLD = "on_hold"
    BROKEN = "broken"


@dataclass(frozen=True)
class GraceProbe:
    """Presence of food activity around local today."""

    local_today: date
    window: tuple[bool, ...]  # window[i] is today - i
    boundary: bool

    @property
    def boundary_date(self) -> date:
        return self.local_today - timedelta(days=GRACE_WINDOW_DAYS)

    def window_days(self) -> list[tuple[date, bool]]:
        return [
            (self.local_today - timedelta(days=offset), present)
            for offset, present in enumerate(self.window)
        ]

    @property
    def any_recent(self) -> bool:
        return any(self.window)

    @classmethod
    def collect(cls, has_food: Callable[[date], bool], local_today: date) -> "GraceProbe":
        window = tuple(
            has_food(local_today - timedelta(days=offset)) for offset in range(GRACE_WINDOW_DAYS)
        )
        boundary = has_food(local_today - timedelta(days=GRACE_WINDOW_DAYS))
        return cls(local_today=local_today, window=window, boundary=boundary)


@dataclass(frozen=True)
class FoodStreakOutcome:
    """New food fields for the streak row plus how we got there."""

    phase: StreakPhase
    floor: date
    pending_missing: int
    current_start: Optional[date]
    current_end: Optional[date]
    current_days: int
    pr_days: int
    pr_end: Optional[date]
    floor_advanced: bool = False

    def as_fields(self) -> dict[str, Any]:
        return {
            "food_break_floor_date": self.floor,
            "food_pending_missing_days": self.pending_missing,
            "food_current_start_date": self.current_start,
            "food_current_end_date": self.current_end,
            "food_current_days": self.current_days,
            "food_pr_days": self.pr_days,
            "food_pr_end_date": self.pr_end,
        }


def advance_food_streak(
    state: StreakState,
    probe: GraceProbe,
    touch_date: Optional[date] = None,
) -> FoodStreakOutcome:
    """Apply one incremental update to the stored food streak.

    Pure function of the stored row, the presence probe and the touch date.
    Calling it again with the same inputs yields the same outcome.
    """
    today = probe.local_today
    grace_boundary = probe.boundary_date
    touch_date = touch_date or today

    floor = state.food_break_floor_date or EPOCH_FLOOR
    start = state.food_current_start_date
    end = state.food_current_end_date
    days = state.food_current_days or 0
    pr_days = state.food_pr_days or 0
    pr_end = state.food_pr_end_date

    # Break confirmation: the only place the floor moves, and only forward.
    floor_advanced = False
    if grace_boundary > floor and not probe.boundary:
        floor = grace_boundary
        floor_advanced = True
        if start is None or start <= floor:
            start, end, days = None, None, 0

    window = probe.window_days()
    pending_missing = sum(1 for day, present in window if day > floor and not present)

    if probe.any_recent:
        phase = StreakPhase.ACTIVE
    elif pending_missing == 0:
        phase = StreakPhase.BROKEN
    else:
        phase = StreakPhase.ON_HOLD

    if phase is StreakPhase.ACTIVE:
        if start is None or start <= floor:
            candidates = [day for day, present in window if present and day > floor]
            if candidates:
                start = min(candidates)
            elif touch_date == today and probe.window[0]:
                start = today
            else:
                start = None
        end = today
        if start is not None and start > floor:
            days = (end - start).days + 1
        else:
            start, end, days = None, None, 0
    elif phase is StreakPhase.BROKEN:
        start, end, days = None, None, 0
    # ON_HOLD keeps start/end/days exactly as stored.

    # A provisional run with pending gaps never claims the record.
    if pending_missing == 0 and days > pr_days:
        pr_days = days
        pr_end = end

    return FoodStreakOutcome(
        phase=phase,
        floor=floor,
        pending_missing=pending_missing,
        current_start=start,
        current_end=end,
        current_days=days,
        pr_days=pr_days,
        pr_end=pr_end,
        floor_advanced=floor_advanced,
    )


class FoodStreakUpdater:
    """O(1) food streak maintenance, called on every touched food day."""

    def __init__(
        self,
        activities: ActivityRepository,
        states: StreakStateRepository,
        days: LocalDayResolver,
        *,
        write_attempts: int = 3,
    ):
        self.activities = activities
        self.states = states
        self.days = days
        self.write_attempts = write_attempts

    def probe(self, user_id: int, local_today: date) -> GraceProbe:
        return GraceProbe.collect(
            lambda day: self.activities.has_activity(user_id, ActivityKind.FOOD, day),
            local_today,
        )

    def update(self, user_id: int, touch_date: Optional[date] = None) -> StreakState:
        local_today = self.days.local_today(user_id)
        outcomes: list[FoodStreakOutcome] = []

        def _compute(current: StreakState) -> Mapping[str, Any]:
            # Probe after every read so a retry sees activity committed by the winner.
            probe = self.probe(user_id, local_today)
            outcome = advance_food_streak(current, probe, touch_date or local_today)
            outcomes.append(outcome)
            return outcome.as_fields()

        state = self.states.update(user_id, _compute, attempts=self.write_attempts)
        outcome = outcomes[-1]
        if outcome.floor_advanced:
            logger.info(
                "Food streak break confirmed",
                extra={"user_id": user_id, "floor": outcome.floor.isoformat()},
            )
        logger.info(
            "Food streak updated",
            extra={
                "user_id": user_id,
                "local_today": local_today.isoformat(),
                "phase": outcome.phase.value,
                "current_days": outcome.current_days,
                "pending_missing": outcome.pending_missing,
                "pr_days": outcome.pr_days,
            },
        )
        return state
