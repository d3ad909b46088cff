"""Registry errors."""


class RegistryError(Exception):
    """Raised when an imported registry is malformed."""
