"""Metadata extraction, canonical naming, and per-entry analysis."""

from .errors import ExtractionError
from .extractor import MetadataExtractor, parse_extraction_response, strip_fences
from .gemini import GeminiExtractor
from .naming import derive_name, normalize_edition, sanitize_slug
from .task import AnalysisTask

__all__ = [
    "AnalysisTask",
    "ExtractionError",
    "GeminiExtractor",
    "MetadataExtractor",
    "derive_name",
    "normalize_edition",
    "parse_extraction_response",
    "sanitize_slug",
    "strip_fences",
]
