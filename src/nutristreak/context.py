"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import (
    SQLModelActivityRepository,
    SQLModelStreakStateRepository,
    SQLModelUserRepository,
)
from .services.local_day import Clock, utc_now
from .services.streaks import StreakEngine


@dataclass
class AppContext:
    """Centralized application context with repositories and the streak engine."""

    # Configuration
    config: BaseConfig

    # Database
    engine: Engine
    session_factory: Callable[[], Session]

    # Repositories
    user_repo: SQLModelUserRepository
    activity_repo: SQLModelActivityRepository
    streak_repo: SQLModelStreakStateRepository

    streaks: StreakEngine

    def close(self) -> None:
        self.engine.dispose()


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    clock: Clock = utc_now,
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    user_repo = SQLModelUserRepository(session_factory)
    activity_repo = SQLModelActivityRepository(session_factory)
    streak_repo = SQLModelStreakStateRepository(session_factory, clock=clock)

    streaks = StreakEngine(
        user_repo,
        activity_repo,
        streak_repo,
        clock=clock,
        default_timezone=config.DEFAULT_TIMEZONE,
        walk_limit=config.LOGIN_WALK_LIMIT,
        write_attempts=config.STATE_WRITE_ATTEMPTS,
    )

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        user_repo=user_repo,
        activity_repo=activity_repo,
        streak_repo=streak_repo,
        streaks=streaks,
    )
