"""Rename errors."""


class RenameError(Exception):
    """Raised when an entry cannot be renamed."""


class MissingHandleError(RenameError):
    """Raised when an entry has no write capability attached.

    Kept apart from filesystem errors so callers can fall back to an offline
    rename script instead of reporting a failure.
    """
