"""Nightly streak maintenance, scheduled outside the engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler as APScheduler
from apscheduler.triggers.cron import CronTrigger

from .exceptions import StreakError

if TYPE_CHECKING:
    from .context import AppContext

logger = logging.getLogger("nutristreak.scheduler")

NIGHTLY_JOB_ID = "nightly_streak_recompute"


class StreakMaintenanceScheduler:
    """Refreshes every user's streaks once a day so stale runs get settled."""

    def __init__(self, ctx: AppContext):
        """Initialize the scheduler with app context.

        Args:
            ctx: Application context with repositories, engine and config
        """
        self.ctx = ctx
        self.scheduler: APScheduler | None = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    def start(self) -> None:
        """Start the background scheduler."""
        if self.scheduler is not None:
            logger.warning("Scheduler already running")
            return

        self.scheduler = APScheduler()
        hour = self.ctx.config.RECOMPUTE_HOUR
        self.scheduler.add_job(
            func=self.run_nightly_recompute,
            trigger=CronTrigger(hour=hour, minute=0),
            id=NIGHTLY_JOB_ID,
            name="Nightly Streak Recompute",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Scheduled nightly streak recompute at {hour:02d}:00")

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=True)
            self.scheduler = None
            logger.info("Background scheduler stopped")

    def run_nightly_recompute(self) -> dict[int, bool]:
        """Recompute all users with a streak row; one failure never stops the rest.

        Returns a mapping of user id to success.
        """
        results: dict[int, bool] = {}
        user_ids = self.ctx.streak_repo.list_user_ids()
        logger.info(f"Starting nightly streak recompute for {len(user_ids)} users")
        for user_id in user_ids:
            try:
                self.ctx.streaks.recompute_all(user_id)
                results[user_id] = True
            except StreakError as exc:
                logger.warning(f"Skipped streak recompute for user {user_id}: {exc}")
                results[user_id] = False
            except Exception as exc:
                logger.error(f"Streak recompute failed for user {user_id}: {exc}", exc_info=True)
                results[user_id] = False
        return results
