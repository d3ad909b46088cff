"""Contract for the metadata extraction service and parsing of its replies."""

from __future__ import annotations

import json
import re
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from magindex.library.models import IssueMetadata

from .errors import ExtractionError

_FENCE_OPEN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"```\s*")


@runtime_checkable
class MetadataExtractor(Protocol):
    async def analyze(self, data: bytes, filename: str) -> IssueMetadata:
        """Extract bibliographic metadata from a PDF.

        Raises:
            ExtractionError: If the service fails or replies with unusable data.
        """


def strip_fences(text: str) -> str:
    """Remove markdown code fences wrapped around a JSON reply."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()


def parse_extraction_response(text: str | None) -> IssueMetadata:
    """Parse the service reply into :class:`IssueMetadata`.

    Missing required fields and malformed JSON are failures, never partial
    results.

    Raises:
        ExtractionError: If the reply is empty, not a JSON object, or incomplete.
    """
    if not text or not text.strip():
        raise ExtractionError("The analysis service returned an empty response.")

    cleaned = strip_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Could not parse the analysis response as JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ExtractionError("The analysis response must be a JSON object.")

    try:
        return IssueMetadata.model_validate(payload)
    except ValidationError as exc:
        missing = sorted(
            str(error["loc"][0]) for error in exc.errors() if error.get("loc")
        )
        raise ExtractionError(
            f"The analysis response is missing or has invalid fields: {', '.join(missing)}"
        ) from exc


__all__ = ["MetadataExtractor", "parse_extraction_response", "strip_fences"]
