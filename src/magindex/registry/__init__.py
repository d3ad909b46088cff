"""Registry export, import, and merge."""

from .errors import RegistryError
from .io import (
    dump_registry,
    entry_to_record,
    export_records,
    load_registry,
    parse_registry,
    write_registry,
)
from .merge import merge_entry, merge_registry
from .models import Registry, RegistryRecord

__all__ = [
    "Registry",
    "RegistryError",
    "RegistryRecord",
    "dump_registry",
    "entry_to_record",
    "export_records",
    "load_registry",
    "merge_entry",
    "merge_registry",
    "parse_registry",
    "write_registry",
]
