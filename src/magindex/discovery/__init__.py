"""File discovery for magazine collections."""

from .errors import DiscoveryError
from .models import DiscoveredFile, FileHandle
from .scanner import DirectoryScanner, is_pdf

__all__ = ["DirectoryScanner", "DiscoveredFile", "DiscoveryError", "FileHandle", "is_pdf"]
