"""
Core task and context model with JSON persistence
"""

from .errors import (
    ActiveContextError,
    AmbiguousIdError,
    ConfigError,
    CorruptDataError,
    DuplicateContextError,
    IoError,
    LastContextError,
    NotFoundError,
    TodoError,
    ValidationError,
)
from .task import Horizon, Priority, Task, parse_horizon, parse_priority
from .context import DEFAULT_CONTEXT, Context, ContextManager, ContextSummary
from .store import SCHEMA_VERSION, ImportMode, ImportResult, ImportSummary, Store

__all__ = [
    'TodoError', 'ValidationError', 'NotFoundError', 'AmbiguousIdError',
    'DuplicateContextError', 'LastContextError', 'ActiveContextError',
    'IoError', 'CorruptDataError', 'ConfigError',
    'Horizon', 'Priority', 'Task', 'parse_horizon', 'parse_priority',
    'DEFAULT_CONTEXT', 'Context', 'ContextManager', 'ContextSummary',
    'SCHEMA_VERSION', 'ImportMode', 'ImportResult', 'ImportSummary', 'Store',
]
