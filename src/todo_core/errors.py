"""
Error types for the todo core

Every failure the core can report is a distinct subclass of TodoError and
carries the identifiers the display layer needs (names, ids, candidates).
"""

from pathlib import Path
from typing import List, Optional, Union


class TodoError(Exception):
    """Base class for all todo-manager errors"""


class ValidationError(TodoError):
    """Bad user input: unknown enum value, empty description or name"""

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class NotFoundError(TodoError):
    """A task or context lookup missed"""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind.capitalize()} not found: {key}")
        self.kind = kind
        self.key = key


class AmbiguousIdError(TodoError):
    """A partial task id matched more than one task"""

    def __init__(self, partial_id: str, candidates: List[str]):
        super().__init__(
            f"Ambiguous ID '{partial_id}' matches {len(candidates)} tasks: "
            f"{', '.join(candidates)}"
        )
        self.partial_id = partial_id
        self.candidates = list(candidates)


class DuplicateContextError(TodoError):
    """A context with this name already exists"""

    def __init__(self, name: str):
        super().__init__(f"Context already exists: {name}")
        self.name = name


class LastContextError(TodoError):
    """Refused to delete the only remaining context"""

    def __init__(self, name: str):
        super().__init__(f"Cannot delete the last context: {name}")
        self.name = name


class ActiveContextError(TodoError):
    """Refused to delete the active context"""

    def __init__(self, name: str):
        super().__init__(
            f"Cannot delete active context '{name}'. Switch to another context first."
        )
        self.name = name


class IoError(TodoError):
    """Filesystem failure while reading or writing a data file"""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(f"{message}: {path}")
        self.path = Path(path)


class CorruptDataError(TodoError):
    """A data file could not be parsed or does not match the schema"""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"Invalid data in {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class ConfigError(TodoError):
    """Configuration file missing or not valid YAML"""
