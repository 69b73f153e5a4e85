"""Pytest configuration and shared fixtures for NutriStreak tests.

Every test gets its own data directory and SQLite file, a frozen clock it can
move around, and repositories/engine wired the same way the application does.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

import pytest

from nutristreak.config import BaseConfig
from nutristreak.context import create_app_context
from nutristreak.infra.database import (
    create_db_engine,
    create_session_factory,
    init_database,
    session_scope,
)
from nutristreak.infra.repositories import (
    SQLModelActivityRepository,
    SQLModelStreakStateRepository,
    SQLModelUserRepository,
)
from nutristreak.models import ActivityKind, User
from nutristreak.services.streaks import StreakEngine

_ENV_VARS = (
    "NUTRISTREAK_DATABASE_URL",
    "NUTRISTREAK_DEV_MODE",
    "NUTRISTREAK_DEFAULT_TIMEZONE",
    "NUTRISTREAK_LOGIN_WALK_LIMIT",
    "NUTRISTREAK_STATE_WRITE_ATTEMPTS",
    "NUTRISTREAK_RECOMPUTE_HOUR",
)


class FrozenClock:
    """Callable clock pinned to an instant until a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_day(self, day: date, at: time = time(12, 0)) -> None:
        """Pin the clock to ``at`` UTC on ``day``."""
        self.now = datetime.combine(day, at, tzinfo=timezone.utc)

    def advance(self, days: int = 1) -> None:
        self.now = self.now + timedelta(days=days)


# =============================================================================
# Environment / Database Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point the data directory at a temp folder and clear config overrides."""
    monkeypatch.setenv("NUTRISTREAK_DATA_DIR", str(tmp_path / "data"))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def config() -> BaseConfig:
    return BaseConfig()


@pytest.fixture(scope="function")
def db_engine(config):
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: engine with foreign keys enforced and all tables created
    """
    engine = create_db_engine(config)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a transactional database session for a single test."""
    with session_scope(db_engine) as session:
        yield session


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching what repositories expect (Callable[[], Session])."""
    return create_session_factory(db_engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))


# =============================================================================
# Repositories / Engine
# =============================================================================


@pytest.fixture
def user_repo(session_factory) -> SQLModelUserRepository:
    return SQLModelUserRepository(session_factory)


@pytest.fixture
def activity_repo(session_factory) -> SQLModelActivityRepository:
    return SQLModelActivityRepository(session_factory)


@pytest.fixture
def streak_repo(session_factory, clock) -> SQLModelStreakStateRepository:
    return SQLModelStreakStateRepository(session_factory, clock=clock)


@pytest.fixture
def streaks(user_repo, activity_repo, streak_repo, clock) -> StreakEngine:
    return StreakEngine(user_repo, activity_repo, streak_repo, clock=clock)


@pytest.fixture
def app_ctx(config, clock):
    ctx = create_app_context(config, clock=clock)
    yield ctx
    ctx.close()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(user_repo):
    """Factory for creating test users.

    Returns:
        Callable: Function that creates and persists User instances
    """
    counter = {"n": 0}

    def _create_user(username: str | None = None, timezone: str | None = "UTC") -> User:
        counter["n"] += 1
        return user_repo.create(username or f"user{counter['n']}", timezone=timezone)

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Default user in UTC."""
    return user_factory("tester")


@pytest.fixture
def activity_factory(activity_repo):
    """Factory that stores activity facts directly, without touching streaks."""

    def _log(user: User, kind: ActivityKind, *days: date) -> None:
        for day in days:
            activity_repo.record(user.id, kind, day)

    return _log
