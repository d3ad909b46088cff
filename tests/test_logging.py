"""Tests for package logging setup."""

import io
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from magindex.config import ConfigError
from magindex.logging_setup import PACKAGE_LOGGER, configure_logging, resolve_level


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers = []
    yield logger
    logger.handlers, logger.level, logger.propagate = saved


def test_configure_logging_installs_one_rich_handler(package_logger: logging.Logger) -> None:
    stream = io.StringIO()
    console = Console(file=stream, width=200)

    configure_logging("info", console=console)
    configure_logging("debug", console=console)

    handlers = [h for h in package_logger.handlers if isinstance(h, RichHandler)]
    assert len(handlers) == 1
    assert package_logger.level == logging.DEBUG
    assert package_logger.propagate is False

    logging.getLogger("magindex.session").info("Session reset.")
    assert "magindex.session: Session reset." in stream.getvalue()


def test_resolve_level_accepts_names_and_numbers() -> None:
    assert resolve_level(" warning ") == logging.WARNING
    assert resolve_level(logging.ERROR) == logging.ERROR
    with pytest.raises(ConfigError):
        resolve_level("chatty")
