"""Resolve a user's local calendar day from their stored timezone."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..logging_config import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]

DEFAULT_TIMEZONE = "UTC"


def utc_now() -> datetime:
    """Default clock: the current aware UTC instant."""
    return datetime.now(timezone.utc)


class TimezoneSource(Protocol):
    def get_timezone(self, user_id: int) -> Optional[str]:
        ...


def resolve_zone(name: Optional[str], default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Return the zone for ``name``, or ``default`` (then UTC) when it is unusable."""
    candidate = (name or "").strip()
    if candidate:
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "Unknown timezone, using fallback",
                extra={"timezone": candidate, "fallback": default},
            )
    try:
        return ZoneInfo(default)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)


class LocalDayResolver:
    """Maps (user timezone, now) to the user's local calendar date.

    Both the timezone lookup and the clock are injected so callers can pin
    "now" in tests. Nothing is cached: a timezone change takes effect on the
    next call.
    """

    def __init__(
        self,
        timezones: TimezoneSource,
        clock: Clock = utc_now,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self.timezones = timezones
        self.clock = clock
        self.default_timezone = default_timezone

    def zone_for(self, user_id: int) -> ZoneInfo:
        return resolve_zone(self.timezones.get_timezone(user_id), self.default_timezone)

    def local_today(self, user_id: int) -> date:
        """Calendar date of the clock's instant in the user's timezone."""
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.zone_for(user_id)).date()
