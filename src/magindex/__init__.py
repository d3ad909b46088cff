"""magindex: catalog and rename magazine PDFs using AI-extracted metadata."""

from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("magindex")
except _metadata.PackageNotFoundError:
    # Source checkout without an installed distribution.
    __version__ = "0.0.0"

__all__ = ["__version__"]
