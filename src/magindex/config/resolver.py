"""Layered resolution of magindex settings."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any, Dict, Iterator

import yaml
from pydantic import ValidationError

from .exceptions import ConfigValueError
from .models import MagindexConfig

ENV_PREFIX = "MAGINDEX__"
ENV_SEPARATOR = "__"

# Lowest precedence first.
SOURCE_ORDER = ("file", "environment", "cli")


def resolve_with_precedence(
    *,
    defaults: MagindexConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> MagindexConfig:
    """Layer overrides on top of ``defaults`` and validate the result.

    Override keys may be nested mappings or dotted paths such as
    ``"processing.concurrency"``; both spellings can be mixed.

    Raises:
        ConfigValueError: If an override is malformed or the merged settings are invalid.
    """
    layers = dict(zip(SOURCE_ORDER, (file_overrides, env_overrides, cli_overrides)))
    settings = defaults.model_dump(mode="python")
    for source in SOURCE_ORDER:
        overrides = layers[source]
        if overrides:
            settings = merge_overrides(settings, expand_dotted(overrides, source=source))

    try:
        return MagindexConfig.model_validate(settings)
    except ValidationError as exc:
        raise ConfigValueError(f"Invalid configuration values: {exc}") from exc


def expand_dotted(overrides: Mapping[str, Any], *, source: str = "cli") -> dict[str, Any]:
    """Turn dotted keys into nested mappings.

    >>> expand_dotted({"llm.model": "x", "naming": {"prefix": "DB"}})
    {'llm': {'model': 'x'}, 'naming': {'prefix': 'DB'}}

    Raises:
        ConfigValueError: If ``overrides`` is not a mapping or two keys collide.
    """
    if not isinstance(overrides, Mapping):
        raise ConfigValueError(f"{source} overrides must be a mapping.")

    tree: dict[str, Any] = {}
    for key, value in overrides.items():
        if not isinstance(key, str) or not key:
            raise ConfigValueError(f"{source} override keys must be non-empty strings.")
        *parents, leaf = key.split(".")
        node = tree
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigValueError(f"{source} override '{key}' collides with '{part}'.")
            node = child
        if isinstance(value, Mapping):
            value = expand_dotted(value, source=source)
            current = node.get(leaf)
            if isinstance(current, dict):
                value = merge_overrides(current, value)
        node[leaf] = value
    return tree


def flatten_for_env(config: MagindexConfig) -> Dict[str, str]:
    """Render every setting as a ``MAGINDEX__SECTION__KEY`` variable."""
    return {
        ENV_PREFIX + ENV_SEPARATOR.join(part.upper() for part in path): _render(value)
        for path, value in _leaves(config.model_dump(mode="python"), ())
    }


def _leaves(
    tree: Mapping[str, Any], path: tuple[str, ...]
) -> Iterator[tuple[tuple[str, ...], Any]]:
    for key, value in tree.items():
        if isinstance(value, Mapping):
            yield from _leaves(value, (*path, str(key)))
        else:
            yield (*path, str(key)), value


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return yaml.safe_dump(list(value), default_flow_style=True).strip()
    return str(value)


def merge_overrides(base: Mapping[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    """Return a deep copy of ``base`` with ``top`` layered over it."""
    result = deepcopy(dict(base))
    for key, value in top.items():
        below = result.get(key)
        if isinstance(value, Mapping) and isinstance(below, Mapping):
            result[key] = merge_overrides(below, value)
        else:
            result[key] = deepcopy(value)
    return result


__all__ = [
    "ENV_PREFIX",
    "expand_dotted",
    "flatten_for_env",
    "merge_overrides",
    "resolve_with_precedence",
]
