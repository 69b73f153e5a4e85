"""SQLModel implementation of the activity presence source."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...models.activity import ActivityDay, ActivityKind


class SQLModelActivityRepository:
    """Point lookups and upserts over ``activity_day``."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def has_activity(self, user_id: int, kind: ActivityKind, day: date) -> bool:
        """Point lookup for one (user, day, kind); never a range scan."""
        with self.session_factory() as session:
            found = session.exec(
                select(ActivityDay.user_id)
                .where(ActivityDay.user_id == user_id)
                .where(ActivityDay.entry_date == day)
                .where(ActivityDay.kind == ActivityKind.parse(kind).value)
            ).first()
            return found is not None

    def get(self, user_id: int, kind: ActivityKind, day: date) -> Optional[ActivityDay]:
        """Get a specific activity row."""
        with self.session_factory() as session:
            obj = session.get(ActivityDay, (user_id, day, ActivityKind.parse(kind).value))
            if obj:
                session.expunge(obj)
            return obj

    def record(
        self,
        user_id: int,
        kind: ActivityKind,
        day: date,
        *,
        seen_at: Optional[datetime] = None,
    ) -> ActivityDay:
        """Insert the activity or refresh ``last_seen_at`` on the existing row."""
        seen_at = seen_at or datetime.now(timezone.utc)
        key = (user_id, day, ActivityKind.parse(kind).value)
        with self.session_factory() as session:
            existing = session.get(ActivityDay, key)
            if existing is None:
                entry = ActivityDay(
                    user_id=user_id,
                    entry_date=day,
                    kind=key[2],
                    first_seen_at=seen_at,
                    last_seen_at=seen_at,
                )
                session.add(entry)
                try:
                    session.commit()
                except IntegrityError:
                    # Lost a first-insert race; fall through and refresh the winner's row.
                    session.rollback()
                    existing = session.get(ActivityDay, key)
                    if existing is None:
                        raise
                else:
                    session.refresh(entry)
                    session.expunge(entry)
                    return entry

            existing.last_seen_at = seen_at
            session.add(existing)
            session.commit()
            session.refresh(existing)
            session.expunge(existing)
            return existing

    def list_days(self, user_id: int, kind: ActivityKind, start: date, end: date) -> list[date]:
        """Days with activity in [start, end], ascending."""
        with self.session_factory() as session:
            return list(
                session.exec(
                    select(ActivityDay.entry_date)
                    .where(ActivityDay.user_id == user_id)
                    .where(ActivityDay.kind == ActivityKind.parse(kind).value)
                    .where(ActivityDay.entry_date >= start)
                    .where(ActivityDay.entry_date <= end)
                    .order_by(ActivityDay.entry_date)  # type: ignore
                ).all()
            )


__all__ = ["SQLModelActivityRepository"]
