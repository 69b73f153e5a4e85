"""User/timezone repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.user import User


class UserRepository(Protocol):
    """Source of users and their configured timezone."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by ID."""
        ...

    def get_timezone(self, user_id: int) -> Optional[str]:
        """Return the stored IANA timezone name, if any."""
        ...
