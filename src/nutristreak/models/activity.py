"""Daily activity facts consumed by the streak engine."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar

from sqlmodel import Field, SQLModel


class ActivityKind(str, Enum):
    """Kinds of daily activity that carry a streak."""

    LOGIN = "login"
    FOOD = "food"

    @classmethod
    def parse(cls, value: "ActivityKind | str") -> "ActivityKind":
        """Coerce a raw value, raising ``ValueError`` for unknown kinds."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class ActivityDay(SQLModel, table=True):
    """One qualifying activity of a kind on a calendar day for a user."""

    __tablename__: ClassVar[str] = "activity_day"

    user_id: int = Field(foreign_key="app_user.id", primary_key=True)
    entry_date: date = Field(primary_key=True, index=True)
    kind: str = Field(primary_key=True, max_length=16)
    first_seen_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    last_seen_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
