"""SQLModel implementation of the streak state store."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...exceptions import StaleStreakStateError
from ...logging_config import get_logger
from ...models.streak_state import StreakState
from ...services.local_day import Clock, utc_now

logger = get_logger(__name__)

# Columns the engine may set through write(); bookkeeping columns are stamped here.
WRITABLE_FIELDS = frozenset(
    {
        "login_current_days",
        "login_current_start_date",
        "login_current_end_date",
        "login_pr_days",
        "login_pr_end_date",
        "food_break_floor_date",
        "food_pending_missing_days",
        "food_current_start_date",
        "food_current_end_date",
        "food_current_days",
        "food_pr_days",
        "food_pr_end_date",
    }
)


class SQLModelStreakStateRepository:
    """One ``streak_state`` row per user, written with optimistic versioning."""

    def __init__(self, session_factory: Callable[[], Session], clock: Clock = utc_now):
        """Initialize with a session factory and the clock used for timestamps."""
        self.session_factory = session_factory
        self.clock = clock

    def ensure_row(self, user_id: int) -> bool:
        """Create a zero-valued row if absent. Returns True when a row was inserted."""
        with self.session_factory() as session:
            if session.get(StreakState, user_id) is not None:
                return False
            now = self.clock()
            session.add(StreakState(user_id=user_id, created_at=now, updated_at=now))
            try:
                session.commit()
            except IntegrityError:
                # Insert-or-ignore: a concurrent first touch may have created it.
                session.rollback()
                if session.get(StreakState, user_id) is None:
                    raise
                return False
        logger.info("Created streak state row", extra={"user_id": user_id})
        return True

    def read(self, user_id: int) -> Optional[StreakState]:
        """Return the row or None."""
        with self.session_factory() as session:
            obj = session.get(StreakState, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def write(
        self,
        user_id: int,
        fields: Mapping[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> StreakState:
        """Merge ``fields`` into the row in a single UPDATE statement.

        Stamps ``last_recomputed_at``/``updated_at`` and bumps ``version``.
        With ``expected_version`` the update only applies to that version and
        raises :class:`StaleStreakStateError` otherwise.
        """
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not writable streak fields: {sorted(unknown)}")

        now = self.clock()
        values = dict(fields)
        values.update(
            last_recomputed_at=now,
            updated_at=now,
            version=StreakState.version + 1,
        )
        statement = sa_update(StreakState).where(StreakState.user_id == user_id)
        if expected_version is not None:
            statement = statement.where(StreakState.version == expected_version)
        statement = statement.values(**values)

        with self.session_factory() as session:
            try:
                result = session.connection().execute(statement)
                if result.rowcount == 0:
                    session.rollback()
                    if expected_version is not None and session.get(StreakState, user_id) is not None:
                        raise StaleStreakStateError(user_id, expected_version)
                    raise LookupError(f"No streak state row for user {user_id}")
                session.commit()
            except Exception:
                session.rollback()
                raise

            obj = session.get(StreakState, user_id)
            session.expunge(obj)
            return obj

    def update(
        self,
        user_id: int,
        compute: Callable[[StreakState], Mapping[str, Any]],
        *,
        attempts: int = 3,
    ) -> StreakState:
        """Run ``compute`` on fresh state and write its result as one serialized step.

        A lost race with another writer re-reads the row and recomputes, up to
        ``attempts`` times; the last :class:`StaleStreakStateError` propagates.
        """
        attempts = max(1, attempts)
        attempt = 0
        while True:
            attempt += 1
            state = self.read(user_id)
            if state is None:
                self.ensure_row(user_id)
                state = self.read(user_id)
            fields = compute(state)
            try:
                return self.write(user_id, fields, expected_version=state.version)
            except StaleStreakStateError:
                if attempt >= attempts:
                    logger.error(
                        "Streak state write kept losing races",
                        extra={"user_id": user_id, "attempts": attempts},
                    )
                    raise
                logger.warning(
                    "Concurrent streak update detected, retrying",
                    extra={"user_id": user_id, "attempt": attempt},
                )

    def list_user_ids(self) -> list[int]:
        """Ids of every user with a streak row."""
        with self.session_factory() as session:
            return list(
                session.exec(select(StreakState.user_id).order_by(StreakState.user_id)).all()  # type: ignore
            )


__all__ = ["SQLModelStreakStateRepository", "WRITABLE_FIELDS"]
