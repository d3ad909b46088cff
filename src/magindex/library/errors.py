"""Entry store errors."""


class LibraryError(Exception):
    """Base exception for entry store operations."""


class EntryNotFoundError(LibraryError, KeyError):
    """Raised when an identity is not present in the store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Entry not found"


class InvalidTransitionError(LibraryError):
    """Raised when an entry is asked to move to a status its lifecycle forbids."""
