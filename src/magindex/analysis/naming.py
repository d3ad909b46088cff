"""Canonical filename rule."""

from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")
_NON_SLUG = re.compile(r"[^A-Za-z0-9_]")

DEFAULT_PREFIX = "DB"
DEFAULT_EDITION_WIDTH = 3
UNKNOWN_SLUG = "Unknown"


def normalize_edition(edition_raw: str | None, *, width: int = DEFAULT_EDITION_WIDTH) -> str:
    """Keep the digits of ``edition_raw`` and left-pad them with zeros to ``width``."""
    digits = _NON_DIGITS.sub("", edition_raw or "")
    return digits.zfill(width)


def sanitize_slug(slug_raw: str | None) -> str:
    """Keep ASCII letters, digits and underscores; fall back to ``Unknown``."""
    slug = _NON_SLUG.sub("", slug_raw or "")
    return slug or UNKNOWN_SLUG


def derive_name(
    edition_raw: str | None,
    slug_raw: str | None,
    *,
    prefix: str = DEFAULT_PREFIX,
    width: int = DEFAULT_EDITION_WIDTH,
) -> str:
    """Return ``{prefix}_{edition}_{slug}.pdf``.

    >>> derive_name("7", "Chefe_De_Fase")
    'DB_007_Chefe_De_Fase.pdf'
    >>> derive_name("12a", "Review #1!")
    'DB_012_Review1.pdf'
    """
    return f"{prefix}_{normalize_edition(edition_raw, width=width)}_{sanitize_slug(slug_raw)}.pdf"


__all__ = ["derive_name", "normalize_edition", "sanitize_slug", "UNKNOWN_SLUG"]
