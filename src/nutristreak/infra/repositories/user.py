"""SQLModel implementation of the user repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.user import User


class SQLModelUserRepository:
    """SQLModel-based user repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by ID."""
        with self.session_factory() as session:
            obj = session.get(User, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def create(self, username: str, *, timezone: Optional[str] = None) -> User:
        """Create a new user."""
        username = username.strip()
        if not username:
            raise ValueError("Username is required")
        with self.session_factory() as session:
            existing = session.exec(select(User).where(User.username == username)).first()
            if existing:
                raise ValueError("Username already exists")
            user = User(username=username, timezone=timezone)
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    def set_timezone(self, user_id: int, timezone: Optional[str]) -> User:
        """Change the user's timezone; already-counted days are not revisited."""
        with self.session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise ValueError(f"User {user_id} not found")
            user.timezone = timezone
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    def get_timezone(self, user_id: int) -> Optional[str]:
        """Return the stored IANA timezone name, if any."""
        with self.session_factory() as session:
            return session.exec(select(User.timezone).where(User.id == user_id)).first()


__all__ = ["SQLModelUserRepository"]
