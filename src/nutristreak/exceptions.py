"""Exceptions raised by the streak engine."""


class StreakError(Exception):
    """Base exception for streak bookkeeping."""


class MissingUserContextError(StreakError):
    """No resolvable user for the call; nothing was written."""

    def __init__(self, user_id=None):
        self.user_id = user_id
        if user_id is None:
            message = "Streak operation requires a user context"
        else:
            message = f"Unknown user: {user_id!r}"
        super().__init__(message)


class UnknownActivityKindError(StreakError, ValueError):
    """Activity kind is neither login nor food."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unknown activity kind: {kind!r}")


class StaleStreakStateError(StreakError):
    """A concurrent writer updated the streak row between read and write."""

    def __init__(self, user_id, expected_version):
        self.user_id = user_id
        self.expected_version = expected_version
        super().__init__(
            f"Streak state for user {user_id} changed since version {expected_version}"
        )
