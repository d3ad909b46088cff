"""In-place renaming and offline rename scripts."""

from .errors import MissingHandleError, RenameError
from .executor import RenameBatchResult, RenameExecutor, RenameOutcome
from .scripts import (
    SCRIPT_FILENAMES,
    SCRIPT_FORMATS,
    generate_rename_bat,
    generate_rename_python,
    generate_rename_sh,
    generate_script,
    rename_candidates,
)

__all__ = [
    "MissingHandleError",
    "RenameBatchResult",
    "RenameError",
    "RenameExecutor",
    "RenameOutcome",
    "SCRIPT_FILENAMES",
    "SCRIPT_FORMATS",
    "generate_rename_bat",
    "generate_rename_python",
    "generate_rename_sh",
    "generate_script",
    "rename_candidates",
]
