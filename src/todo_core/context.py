"""
Contexts and the context manager

A Context is a named task list. The ContextManager owns every Context and
tracks which one is active; it guarantees there is always at least one
context and that the active name always refers to an existing one.
"""

import logging
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Union

from .errors import (
    ActiveContextError,
    AmbiguousIdError,
    DuplicateContextError,
    LastContextError,
    NotFoundError,
    ValidationError,
)
from .task import Horizon, Priority, Task, parse_horizon

DEFAULT_CONTEXT = 'default'

logger = logging.getLogger("TodoManager.Context")


class ContextSummary(NamedTuple):
    name: str
    task_count: int
    is_active: bool


def _require_name(name: Optional[str]) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Context name cannot be empty", value=name)
    return str(name)


class Context:
    """Named, ordered collection of tasks with unique ids"""

    def __init__(self, name: str, tasks: Optional[Iterable[Task]] = None):
        self.name = _require_name(name)
        self.tasks: List[Task] = []
        for task in tasks or []:
            self._append(task)

    def __len__(self) -> int:
        return len(self.tasks)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Context(name={self.name!r}, tasks={len(self.tasks)})"

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    def _append(self, task: Task) -> None:
        if any(existing.id == task.id for existing in self.tasks):
            raise ValidationError(
                f"Duplicate task id '{task.id}' in context '{self.name}'", value=task.id
            )
        self.tasks.append(task)

    def add_task(
        self,
        description: str,
        horizon: Union[Horizon, str] = Horizon.SHORT,
        priority: Union[Priority, str] = Priority.MEDIUM
    ) -> str:
        """
        Create a task and append it to this context

        Returns:
            The new task's full id
        """
        task = Task.create(description, horizon, priority)
        self._append(task)
        logger.debug(f"Added task {task.id} to context '{self.name}'")
        return task.id

    def find_task(self, partial_id: str) -> Task:
        """
        Resolve a task by a case-insensitive prefix of its id

        Args:
            partial_id: Full id or any prefix of it

        Returns:
            The single matching task

        Raises:
            ValidationError: if partial_id is empty
            NotFoundError: if no task id starts with partial_id
            AmbiguousIdError: if more than one task id starts with partial_id
        """
        if partial_id is None or not str(partial_id).strip():
            raise ValidationError("Task ID cannot be empty", value=partial_id)

        prefix = str(partial_id).strip().lower()
        matches = [task for task in self.tasks if task.id.lower().startswith(prefix)]

        if not matches:
            raise NotFoundError('task', str(partial_id))
        if len(matches) > 1:
            raise AmbiguousIdError(str(partial_id), [task.id for task in matches])
        return matches[0]

    def remove_task(self, partial_id: str) -> Task:
        """Resolve a task like find_task and delete it permanently"""
        task = self.find_task(partial_id)
        self.tasks = [t for t in self.tasks if t.id != task.id]
        logger.debug(f"Removed task {task.id} from context '{self.name}'")
        return task

    def list_tasks(
        self,
        horizon: Union[Horizon, str, None] = None,
        include_completed: bool = False
    ) -> Iterator[Task]:
        """
        Iterate over a sorted, filtered view of the tasks

        Order is priority descending, then creation time ascending. Storage
        order is never changed; each call builds a new view.

        Args:
            horizon: Only yield tasks with this horizon
            include_completed: Yield completed tasks as well
        """
        wanted = parse_horizon(horizon) if horizon is not None else None
        selected = [
            task for task in self.tasks
            if (wanted is None or task.horizon is wanted)
            and (include_completed or not task.completed)
        ]
        selected.sort(key=lambda t: (-t.priority.rank, t.created_at))
        return iter(selected)


class ContextManager:
    """Owns all contexts and the name of the active one"""

    def __init__(
        self,
        contexts: Optional[Iterable[Context]] = None,
        active_context: Optional[str] = None
    ):
        self.contexts: Dict[str, Context] = {}
        for context in contexts or []:
            self.insert_context(context)

        if not self.contexts:
            self.contexts[DEFAULT_CONTEXT] = Context(DEFAULT_CONTEXT)
        if active_context is None:
            active_context = next(iter(self.contexts))
        if active_context not in self.contexts:
            raise NotFoundError('context', active_context)
        self.active_context = active_context

    def __len__(self) -> int:
        return len(self.contexts)

    def __contains__(self, name: object) -> bool:
        return name in self.contexts

    @property
    def names(self) -> List[str]:
        return list(self.contexts)

    @property
    def total_tasks(self) -> int:
        return sum(len(context) for context in self.contexts.values())

    def get(self, name: str) -> Context:
        if name not in self.contexts:
            raise NotFoundError('context', name)
        return self.contexts[name]

    def active(self) -> Context:
        """Mutable reference to the active context"""
        return self.contexts[self.active_context]

    def insert_context(self, context: Context) -> None:
        """Adopt an existing context object as-is"""
        if context.name in self.contexts:
            raise DuplicateContextError(context.name)
        self.contexts[context.name] = context

    def create_context(self, name: str) -> Context:
        """
        Create an empty context; it does not become active

        Raises:
            ValidationError: if name is empty
            DuplicateContextError: if the exact name is taken
        """
        name = _require_name(name)
        if name in self.contexts:
            raise DuplicateContextError(name)
        context = Context(name)
        self.contexts[name] = context
        logger.info(f"Created context '{name}'")
        return context

    def switch_active(self, name: str) -> Context:
        if name not in self.contexts:
            raise NotFoundError('context', name)
        self.active_context = name
        logger.info(f"Active context is now '{name}'")
        return self.contexts[name]

    def delete_context(self, name: str) -> Context:
        """
        Delete a context and all of its tasks

        Checks run in a fixed order: existence, then last remaining, then
        active, so the first failing condition decides the error.

        Raises:
            NotFoundError: no context has this name
            LastContextError: it is the only context left
            ActiveContextError: it is the active context
        """
        if name not in self.contexts:
            raise NotFoundError('context', name)
        if len(self.contexts) <= 1:
            raise LastContextError(name)
        if name == self.active_context:
            raise ActiveContextError(name)

        removed = self.contexts.pop(name)
        logger.info(f"Deleted context '{name}' ({len(removed)} tasks)")
        return removed

    def list_contexts(self) -> Iterator[ContextSummary]:
        """Yield (name, task_count, is_active) sorted by name"""
        for name in sorted(self.contexts):
            yield ContextSummary(
                name=name,
                task_count=len(self.contexts[name]),
                is_active=name == self.active_context
            )
