"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, keeping the default on junk."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "NutriStreak"
    DB_FILENAME = "nutristreak.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("NUTRISTREAK_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("NUTRISTREAK_DATABASE_URL", self._build_sqlite_url())
        self.DEFAULT_TIMEZONE = (os.getenv("NUTRISTREAK_DEFAULT_TIMEZONE") or "UTC").strip() or "UTC"
        self.LOGIN_WALK_LIMIT = _env_int("NUTRISTREAK_LOGIN_WALK_LIMIT", 400)
        self.STATE_WRITE_ATTEMPTS = _env_int("NUTRISTREAK_STATE_WRITE_ATTEMPTS", 3)
        self.RECOMPUTE_HOUR = _env_int("NUTRISTREAK_RECOMPUTE_HOUR", 3) % 24

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("NUTRISTREAK_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.is_sqlite:
            return {"pool_pre_ping": True}
        return {"connect_args": {"check_same_thread": False}}

