"""Login streak: bounded backward walk from the user's local today."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional

from ..domain.repositories import ActivityRepository, StreakStateRepository
from ..logging_config import get_logger
from ..models.activity import ActivityKind
from ..models.streak_state import StreakState
from .local_day import LocalDayResolver

logger = get_logger(__name__)

DEFAULT_WALK_LIMIT = 400


@dataclass(frozen=True)
class LoginWalk:
    """Result of walking back from today over consecutive login days."""

    days: int
    start: Optional[date]
    end: Optional[date]
    capped: bool = False


def walk_login_days(
    has_login,
    local_today: date,
    *,
    limit: int = DEFAULT_WALK_LIMIT,
) -> LoginWalk:
    """Count consecutive login days ending at ``local_today``.

    ``has_login`` is a ``date -> bool`` point lookup. There is no grace: a
    missing login today yields zero immediately. At most ``limit`` days are
    examined.
    """
    days = 0
    start: Optional[date] = None
    cursor = local_today
    while days < limit and has_login(cursor):
        days += 1
        start = cursor
        cursor -= timedelta(days=1)

    if days == 0:
        return LoginWalk(days=0, start=None, end=None)
    return LoginWalk(days=days, start=start, end=local_today, capped=days >= limit)


def login_fields(state: StreakState, walk: LoginWalk) -> dict[str, Any]:
    """Partial StreakState update for a completed walk."""
    fields: dict[str, Any] = {
        "login_current_days": walk.days,
        "login_current_start_date": walk.start,
        "login_current_end_date": walk.end,
    }
    if walk.days > (state.login_pr_days or 0):
        fields["login_pr_days"] = walk.days
        fields["login_pr_end_date"] = walk.end
    return fields


class LoginStreakRecomputer:
    """Recomputes the login streak on a login event or an explicit refresh."""

    def __init__(
        self,
        activities: ActivityRepository,
        states: StreakStateRepository,
        days: LocalDayResolver,
        *,
        walk_limit: int = DEFAULT_WALK_LIMIT,
        write_attempts: int = 3,
    ):
        self.activities = activities
        self.states = states
        self.days = days
        self.walk_limit = walk_limit
        self.write_attempts = write_attempts

    def recompute(self, user_id: int) -> StreakState:
        local_today = self.days.local_today(user_id)
        walks: list[LoginWalk] = []

        def _compute(current: StreakState) -> dict[str, Any]:
            # Walk after every read so a retry sees logins committed by the winner.
            walk = walk_login_days(
                lambda day: self.activities.has_activity(user_id, ActivityKind.LOGIN, day),
                local_today,
                limit=self.walk_limit,
            )
            walks.append(walk)
            return login_fields(current, walk)

        state = self.states.update(user_id, _compute, attempts=self.write_attempts)
        if walks[-1].capped:
            logger.warning(
                "Login streak walk hit its iteration cap",
                extra={"user_id": user_id, "limit": self.walk_limit},
            )
        logger.info(
            "Login streak recomputed",
            extra={
                "user_id": user_id,
                "local_today": local_today.isoformat(),
                "current_days": state.login_current_days,
                "pr_days": state.login_pr_days,
            },
        )
        return state
