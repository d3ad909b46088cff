"""Analysis errors."""


class ExtractionError(Exception):
    """Raised when metadata could not be extracted from a document."""
