"""Process logging for the magindex package."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from magindex.config import ConfigError

PACKAGE_LOGGER = "magindex"


def resolve_level(level: str | int) -> int:
    """Translate a level name such as ``"info"`` into its numeric value.

    Raises:
        ConfigError: If the name is not a known logging level.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ConfigError(f"Unknown logging level: {level!r}")
    return value


def configure_logging(
    level: str | int = "WARNING", *, console: Console | None = None
) -> logging.Logger:
    """Route the package logger through a rich handler on stderr.

    Calling this again only adjusts the level; a second handler is never added.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolve_level(level))
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
    return logger


__all__ = ["configure_logging", "resolve_level", "PACKAGE_LOGGER"]
