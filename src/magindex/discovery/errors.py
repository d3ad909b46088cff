"""Discovery errors."""


class DiscoveryError(Exception):
    """Raised when a selection yields no matching files."""
