"""Per-user streak bookkeeping row and its read-only snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

# Default food watermark: nothing has ever been confirmed as a break.
EPOCH_FLOOR = date(1970, 1, 1)


class StreakState(SQLModel, table=True):
    """Login and food streak bounds plus personal records for one user.

    Written only by the streak engine; everything else reads it through
    :class:`StreakSnapshot`.
    """

    __tablename__: ClassVar[str] = "streak_state"

    user_id: int = Field(foreign_key="app_user.id", primary_key=True)

    login_current_days: int = Field(default=0, nullable=False)
    login_current_start_date: Optional[date] = Field(default=None)
    login_current_end_date: Optional[date] = Field(default=None)
    login_pr_days: int = Field(default=0, nullable=False)
    login_pr_end_date: Optional[date] = Field(default=None)

    food_break_floor_date: date = Field(default=EPOCH_FLOOR, nullable=False)
    food_pending_missing_days: int = Field(default=0, nullable=False)
    food_current_start_date: Optional[date] = Field(default=None)
    food_current_end_date: Optional[date] = Field(default=None)
    food_current_days: int = Field(default=0, nullable=False)
    food_pr_days: int = Field(default=0, nullable=False)
    food_pr_end_date: Optional[date] = Field(default=None)

    version: int = Field(default=0, nullable=False)
    last_recomputed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


@dataclass(frozen=True)
class StreakRun:
    """Current run and record of one streak kind."""

    current_days: int = 0
    current_start_date: Optional[date] = None
    current_end_date: Optional[date] = None
    pr_days: int = 0
    pr_end_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.current_days > 0


@dataclass(frozen=True)
class StreakSnapshot:
    """Immutable view of a user's streaks for UI and reporting layers."""

    user_id: int
    login: StreakRun
    food: StreakRun
    food_break_floor_date: date = EPOCH_FLOOR
    food_pending_missing_days: int = 0
    last_recomputed_at: Optional[datetime] = None

    @property
    def food_on_hold(self) -> bool:
        """True while missing days in the grace window can still be backfilled."""
        return self.food.is_active and self.food_pending_missing_days > 0

    @classmethod
    def empty(cls, user_id: int) -> "StreakSnapshot":
        return cls(user_id=user_id, login=StreakRun(), food=StreakRun())

    @classmethod
    def from_state(cls, state: StreakState) -> "StreakSnapshot":
        return cls(
            user_id=state.user_id,
            login=StreakRun(
                current_days=state.login_current_days,
                current_start_date=state.login_current_start_date,
                current_end_date=state.login_current_end_date,
                pr_days=state.login_pr_days,
                pr_end_date=state.login_pr_end_date,
            ),
            food=StreakRun(
                current_days=state.food_current_days,
                current_start_date=state.food_current_start_date,
                current_end_date=state.food_current_end_date,
                pr_days=state.food_pr_days,
                pr_end_date=state.food_pr_end_date,
            ),
            food_break_floor_date=state.food_break_floor_date,
            food_pending_missing_days=state.food_pending_missing_days,
            last_recomputed_at=state.last_recomputed_at,
        )

    def as_dict(self) -> dict:
        """Flat, JSON-friendly mapping with ISO dates."""

        def _iso(value):
            return value.isoformat() if value is not None else None

        return {
            "user_id": self.user_id,
            "login_current_days": self.login.current_days,
            "login_current_start_date": _iso(self.login.current_start_date),
            "login_current_end_date": _iso(self.login.current_end_date),
            "login_pr_days": self.login.pr_days,
            "login_pr_end_date": _iso(self.login.pr_end_date),
            "food_current_days": self.food.current_days,
            "food_current_start_date": _iso(self.food.current_start_date),
            "food_current_end_date": _iso(self.food.current_end_date),
            "food_pr_days": self.food.pr_days,
            "food_pr_end_date": _iso(self.food.pr_end_date),
            "food_break_floor_date": _iso(self.food_break_floor_date),
            "food_pending_missing_days": self.food_pending_missing_days,
            "last_recomputed_at": _iso(self.last_recomputed_at),
        }
