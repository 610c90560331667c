"""
Task model

A Task is the unit of work: a description tagged with a time horizon and a
priority. Horizon and priority strings coming from the command line are
validated here by pure parse functions.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import ValidationError


class Horizon(Enum):
    """Planning timeframe of a task"""
    SHORT = 'short'  # day-to-day
    MID = 'mid'      # within a month
    LONG = 'long'    # within a year


class Priority(Enum):
    """Task priority; rank orders High above Medium above Low"""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}

HORIZON_ALIASES: Dict[str, Horizon] = {
    'short': Horizon.SHORT, 'shortterm': Horizon.SHORT, 'short-term': Horizon.SHORT, 's': Horizon.SHORT,
    'mid': Horizon.MID, 'midterm': Horizon.MID, 'mid-term': Horizon.MID, 'm': Horizon.MID,
    'long': Horizon.LONG, 'longterm': Horizon.LONG, 'long-term': Horizon.LONG, 'l': Horizon.LONG,
}

PRIORITY_ALIASES: Dict[str, Priority] = {
    'low': Priority.LOW, 'l': Priority.LOW,
    'medium': Priority.MEDIUM, 'med': Priority.MEDIUM, 'm': Priority.MEDIUM,
    'high': Priority.HIGH, 'hi': Priority.HIGH, 'h': Priority.HIGH,
}


def parse_horizon(value: Union[Horizon, str]) -> Horizon:
    """
    Parse a time horizon from free text

    Args:
        value: Horizon member or text such as 'short', 'mid-term', 'L'

    Returns:
        Horizon member

    Raises:
        ValidationError: if the text names no horizon
    """
    if isinstance(value, Horizon):
        return value
    key = str(value).strip().lower()
    if key not in HORIZON_ALIASES:
        raise ValidationError(
            f"Invalid time horizon: '{value}' (expected short, mid or long)", value=str(value)
        )
    return HORIZON_ALIASES[key]


def parse_priority(value: Union[Priority, str]) -> Priority:
    """
    Parse a priority from free text

    Args:
        value: Priority member or text such as 'high', 'med', 'l'

    Returns:
        Priority member

    Raises:
        ValidationError: if the text names no priority
    """
    if isinstance(value, Priority):
        return value
    key = str(value).strip().lower()
    if key not in PRIORITY_ALIASES:
        raise ValidationError(
            f"Invalid priority: '{value}' (expected low, medium or high)", value=str(value)
        )
    return PRIORITY_ALIASES[key]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC"""
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {value!r}")
    dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _require_description(description: Optional[str]) -> str:
    if description is None or not str(description).strip():
        raise ValidationError("Task description cannot be empty", value=description)
    return str(description)


@dataclass
class Task:
    """A single task owned by exactly one Context"""
    id: str
    description: str
    horizon: Horizon = Horizon.SHORT
    priority: Priority = Priority.MEDIUM
    completed: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        description: str,
        horizon: Union[Horizon, str] = Horizon.SHORT,
        priority: Union[Priority, str] = Priority.MEDIUM
    ) -> 'Task':
        """
        Create a new incomplete task with a fresh UUID

        Raises:
            ValidationError: on empty description or unknown horizon/priority
        """
        description = _require_description(description)
        horizon = parse_horizon(horizon)
        priority = parse_priority(priority)
        now = utc_now()
        return cls(
            id=str(uuid.uuid4()),
            description=description,
            horizon=horizon,
            priority=priority,
            completed=False,
            created_at=now,
            updated_at=now
        )

    def touch(self) -> None:
        self.updated_at = utc_now()

    def complete(self) -> None:
        """Mark complete. Completing twice is allowed and still touches updated_at."""
        self.completed = True
        self.touch()

    def edit(
        self,
        description: Optional[str] = None,
        horizon: Union[Horizon, str, None] = None,
        priority: Union[Priority, str, None] = None
    ) -> None:
        """
        Update only the supplied fields

        All values are validated before anything changes, so a bad value
        leaves the task untouched.
        """
        new_description = _require_description(description) if description is not None else None
        new_horizon = parse_horizon(horizon) if horizon is not None else None
        new_priority = parse_priority(priority) if priority is not None else None

        if new_description is not None:
            self.description = new_description
        if new_horizon is not None:
            self.horizon = new_horizon
        if new_priority is not None:
            self.priority = new_priority
        self.touch()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'description': self.description,
            'horizon': self.horizon.value,
            'priority': self.priority.value,
            'completed': self.completed,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """
        Build a task from its persisted form

        Raises:
            ValidationError: on empty description
            KeyError, TypeError, ValueError: on missing or malformed fields
        """
        task_id = data['id']
        if not isinstance(task_id, str) or not task_id:
            raise ValueError(f"task id must be a non-empty string, got {task_id!r}")
        description = data['description']
        if not isinstance(description, str):
            raise TypeError(f"description of task {task_id} must be a string")
        completed = data.get('completed', False)
        if not isinstance(completed, bool):
            raise TypeError(f"completed flag of task {task_id} must be a boolean")
        horizon = data['horizon']
        priority = data['priority']
        if not isinstance(horizon, str) or not isinstance(priority, str):
            raise TypeError(f"horizon and priority of task {task_id} must be strings")

        created_at = parse_timestamp(data['created_at'])
        updated_raw = data.get('updated_at')
        updated_at = parse_timestamp(updated_raw) if updated_raw is not None else created_at

        return cls(
            id=task_id,
            description=_require_description(description),
            horizon=Horizon(horizon),
            priority=Priority(priority),
            completed=completed,
            created_at=created_at,
            updated_at=updated_at
        )
