#!/usr/bin/env python3
"""
TodoManager

Personal task tracker for the command line:
1. Records tasks with a time horizon (short/mid/long) and a priority
2. Groups tasks into named contexts, one of which is active
3. Lists, edits, completes and deletes tasks by partial ID
4. Persists everything to a single JSON file with atomic saves
5. Exports state and imports it back (replace or merge)
"""

import os
import sys
import copy
import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional, Iterable

from rich.console import Console
from rich.markup import escape

from todo_core import (
    ActiveContextError,
    AmbiguousIdError,
    ConfigError,
    ContextSummary,
    CorruptDataError,
    DuplicateContextError,
    Horizon,
    ImportMode,
    ImportResult,
    IoError,
    LastContextError,
    NotFoundError,
    Priority,
    Store,
    Task,
    TodoError,
    ValidationError,
)

APP_NAME = 'todo-manager'

DEFAULT_CONFIG: Dict[str, Any] = {
    'storage': {
        'data_dir': None,
        'data_file': 'data.json',
    },
    'defaults': {
        'horizon': 'short',
        'priority': 'medium',
    },
    'display': {
        'short_id_length': 6,
    },
    'logging': {
        'level': 'WARNING',
    },
}


# ==================== Paths ====================

def default_data_dir() -> Path:
    """Platform data directory for the state file"""
    env_dir = os.environ.get('TODO_DATA_DIR')
    if env_dir:
        return Path(env_dir).expanduser()
    if sys.platform == 'win32':
        return Path(os.environ.get('APPDATA', Path.home() / 'AppData' / 'Roaming')) / APP_NAME
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support' / APP_NAME
    xdg = os.environ.get('XDG_DATA_HOME')
    base = Path(xdg) if xdg else Path.home() / '.local' / 'share'
    return base / APP_NAME


def default_config_dir() -> Path:
    """Platform config directory for config.yaml"""
    if sys.platform == 'win32':
        return Path(os.environ.get('APPDATA', Path.home() / 'AppData' / 'Roaming')) / APP_NAME
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support' / APP_NAME
    xdg = os.environ.get('XDG_CONFIG_HOME')
    base = Path(xdg) if xdg else Path.home() / '.config'
    return base / APP_NAME


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class TodoManager:
    """
    Application service around the core model

    Loads configuration and state once per invocation, runs one command
    against the active context, and saves only when something changed.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        data_dir: Optional[str] = None,
        verbosity: int = 0
    ):
        """Initialize TodoManager with configuration and loaded state"""
        self.logger = self._setup_logging()
        self.config = self._load_config(config_path)
        self._apply_log_level(verbosity)

        self.data_path = self._resolve_data_path(data_dir)
        self.store = Store(self.data_path)
        self.manager = self.store.load()

        self.logger.debug(f"TodoManager ready (data file: {self.data_path})")

    def _setup_logging(self) -> logging.Logger:
        """Setup logging for the application"""
        logger = logging.getLogger("TodoManager")

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - TodoManager - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(logging.WARNING)

        return logger

    def _apply_log_level(self, verbosity: int) -> None:
        if verbosity >= 2:
            level = logging.DEBUG
        elif verbosity == 1:
            level = logging.INFO
        else:
            name = str(self.config['logging'].get('level', 'WARNING')).upper()
            level = logging.getLevelName(name)
            if not isinstance(level, int):
                self.logger.warning(f"Unknown log level '{name}' in config, using WARNING")
                level = logging.WARNING
        self.logger.setLevel(level)

    def _load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file

        An explicit path must exist. Otherwise $TODO_CONFIG or the platform
        config.yaml is used when present, and built-in defaults when not.
        """
        if config_path is not None:
            path = Path(config_path).expanduser()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
        elif os.environ.get('TODO_CONFIG'):
            path = Path(os.environ['TODO_CONFIG']).expanduser()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path} (from TODO_CONFIG)")
        else:
            path = default_config_dir() / 'config.yaml'
            if not path.exists():
                self.logger.debug(f"No config at {path}, using defaults")
                return copy.deepcopy(DEFAULT_CONFIG)

        try:
            with open(path, 'r') as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigError(f"Config {path} must contain a mapping at top level")

        for section in DEFAULT_CONFIG:
            value = user_config.get(section)
            if value is None:
                # empty section in YAML: keep the defaults
                user_config.pop(section, None)
            elif not isinstance(value, dict):
                raise ConfigError(f"Config section '{section}' in {path} must be a mapping")

        config = _deep_merge(DEFAULT_CONFIG, user_config)
        self._validate_config(config, path)

        self.logger.debug(f"Loaded config from {path}")
        return config

    @staticmethod
    def _validate_config(config: Dict[str, Any], path: Path) -> None:
        storage = config['storage']
        data_file = storage.get('data_file')
        if not isinstance(data_file, str) or not data_file.strip():
            raise ConfigError(f"storage.data_file in {path} must be a non-empty string")
        data_dir = storage.get('data_dir')
        if data_dir is not None and not isinstance(data_dir, str):
            raise ConfigError(f"storage.data_dir in {path} must be a path string")

        for key in ('horizon', 'priority'):
            if not isinstance(config['defaults'].get(key), str):
                raise ConfigError(f"defaults.{key} in {path} must be a string")

        length = config['display'].get('short_id_length')
        if isinstance(length, bool) or not isinstance(length, int) or length < 1:
            raise ConfigError(f"display.short_id_length in {path} must be a positive integer")

    def _resolve_data_path(self, data_dir: Optional[str] = None) -> Path:
        """Data directory precedence: argument, config, $TODO_DATA_DIR, platform default"""
        storage = self.config['storage']
        if data_dir:
            directory = Path(data_dir).expanduser()
        elif storage.get('data_dir'):
            directory = Path(storage['data_dir']).expanduser()
        else:
            directory = default_data_dir()
        return directory / storage.get('data_file', 'data.json')

    def save(self) -> None:
        self.store.save(self.manager)

    # ==================== Task Commands ====================

    def add_task(
        self,
        description: str,
        horizon: Optional[str] = None,
        priority: Optional[str] = None
    ) -> Task:
        """
        Add a task to the active context

        Args:
            description: Task text (already trimmed by the CLI)
            horizon: Horizon text; config default when None
            priority: Priority text; config default when None

        Returns:
            The new Task
        """
        defaults = self.config['defaults']
        horizon = horizon if horizon is not None else defaults['horizon']
        priority = priority if priority is not None else defaults['priority']

        context = self.manager.active()
        task_id = context.add_task(description, horizon, priority)
        self.save()
        self.logger.info(f"Added task {task_id[:8]} to '{context.name}'")
        return context.find_task(task_id)

    def list_tasks(self, horizon: Optional[str] = None, include_completed: bool = False) -> List[Task]:
        return list(self.manager.active().list_tasks(horizon, include_completed))

    def get_task(self, task_id: str) -> Task:
        return self.manager.active().find_task(task_id)

    def complete_task(self, task_id: str) -> Task:
        task = self.manager.active().find_task(task_id)
        task.complete()
        self.save()
        self.logger.info(f"Completed task {task.id}")
        return task

    def edit_task(
        self,
        task_id: str,
        description: Optional[str] = None,
        horizon: Optional[str] = None,
        priority: Optional[str] = None
    ) -> Task:
        """
        Edit the supplied fields of a task in the active context

        Raises:
            ValidationError: if no field is supplied or a value is invalid
        """
        if description is None and horizon is None and priority is None:
            raise ValidationError("Nothing to edit: give a description, horizon or priority")

        task = self.manager.active().find_task(task_id)
        task.edit(description, horizon, priority)
        self.save()
        self.logger.info(f"Edited task {task.id}")
        return task

    def delete_task(self, task_id: str) -> Task:
        task = self.manager.active().remove_task(task_id)
        self.save()
        self.logger.info(f"Deleted task {task.id}")
        return task

    # ==================== Context Commands ====================

    def create_context(self, name: str) -> None:
        self.manager.create_context(name)
        self.save()

    def switch_context(self, name: str) -> int:
        """Switch the active context; returns its task count"""
        context = self.manager.switch_active(name)
        self.save()
        return len(context)

    def list_contexts(self) -> List[ContextSummary]:
        return list(self.manager.list_contexts())

    def delete_context(self, name: str) -> int:
        """Delete a context; returns how many tasks went with it"""
        removed = self.manager.delete_context(name)
        self.save()
        return len(removed)

    # ==================== Import / Export ====================

    def export(self, path: str) -> Path:
        return self.store.export(self.manager, Path(path).expanduser())

    def import_data(self, path: str, merge: bool = False) -> ImportResult:
        """
        Import a document, replacing or merging into current state

        Nothing is saved unless the whole document validates.
        """
        mode = ImportMode.MERGE if merge else ImportMode.REPLACE
        result = self.store.import_data(Path(path).expanduser(), mode, self.manager)
        self.manager = result.manager
        self.save()
        return result


# ==================== Display ====================

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)

HORIZON_HEADERS = [
    (Horizon.SHORT, "SHORT-TERM TASKS"),
    (Horizon.MID, "MID-TERM TASKS"),
    (Horizon.LONG, "LONG-TERM TASKS"),
]

HORIZON_LABELS = {
    Horizon.SHORT: "Short-term (day-to-day)",
    Horizon.MID: "Mid-term (within a month)",
    Horizon.LONG: "Long-term (within a year)",
}

PRIORITY_TAGS = {
    Priority.HIGH: "\\[[bold red]HIGH[/bold red]]",
    Priority.MEDIUM: "\\[[yellow]MED [/yellow]]",
    Priority.LOW: "\\[[dim]LOW [/dim]]",
}


def format_task_line(task: Task, short_id_length: int = 6) -> str:
    checkbox = "[green]\\[✓][/green]" if task.completed else "\\[ ]"
    short_id = escape(task.id[:short_id_length])
    return f"{checkbox} [dim]{short_id}[/dim] {PRIORITY_TAGS[task.priority]} {escape(task.description)}"


def display_tasks(tasks: Iterable[Task], context_name: str, short_id_length: int = 6) -> None:
    """Print tasks grouped by horizon, keeping the given order inside each group"""
    tasks = list(tasks)
    displayed_any = False

    for horizon, header in HORIZON_HEADERS:
        group = [task for task in tasks if task.horizon is horizon]
        if not group:
            continue
        if displayed_any:
            console.print()
        displayed_any = True
        console.print(f"[bold cyan]{header}[/bold cyan]")
        for task in group:
            console.print(f"  {format_task_line(task, short_id_length)}")

    if not displayed_any:
        console.print("[dim]No tasks to display.[/dim]")

    console.print()
    console.print(f"[cyan]ℹ[/cyan] Context: [bold cyan]{escape(context_name)}[/bold cyan]")


def display_task_detail(task: Task) -> None:
    console.print("[bold underline]Task Details:[/bold underline]")
    console.print()
    console.print(f"  [bold]ID[/bold]: [dim]{escape(task.id)}[/dim]")
    console.print(f"  [bold]Description[/bold]: {escape(task.description)}")
    console.print(f"  [bold]Time Horizon[/bold]: {HORIZON_LABELS[task.horizon]}")
    console.print(f"  [bold]Priority[/bold]: {task.priority.value.capitalize()}")
    status = "[bold green]Completed ✓[/bold green]" if task.completed else "Incomplete"
    console.print(f"  [bold]Status[/bold]: {status}")
    console.print(f"  [bold]Created[/bold]: [dim]{task.created_at.isoformat()}[/dim]")
    console.print(f"  [bold]Updated[/bold]: [dim]{task.updated_at.isoformat()}[/dim]")


def display_contexts(summaries: Iterable[ContextSummary]) -> None:
    console.print("[bold underline]Available Contexts:[/bold underline]")
    console.print()
    for summary in summaries:
        count = f"({summary.task_count} tasks)"
        if summary.is_active:
            console.print(f"  [bold green]● {escape(summary.name)}[/bold green] [dim]{count}[/dim]")
        else:
            console.print(f"  [dim]○[/dim] {escape(summary.name)} [dim]{count}[/dim]")
    console.print()
    console.print("[dim]  ● = active context[/dim]")


def display_import(result: ImportResult) -> None:
    summary = result.summary
    for original, new_name in summary.renamed:
        console.print(
            f"[yellow]ℹ[/yellow] Context '{escape(original)}' renamed to "
            f"'[cyan]{escape(new_name)}[/cyan]' (name conflict)"
        )
    suffix = " (replaced existing data)" if result.mode is ImportMode.REPLACE else ""
    console.print(
        f"[bold green]✓[/bold green] Imported {summary.contexts_added} contexts "
        f"and {summary.tasks_imported} tasks{suffix}"
    )


def format_error(error: TodoError) -> str:
    """One message per error class, naming the identifiers involved"""
    if isinstance(error, AmbiguousIdError):
        candidates = "\n".join(f"  - {candidate}" for candidate in error.candidates)
        return f"Ambiguous ID '{error.partial_id}' matches multiple tasks:\n{candidates}"
    if isinstance(error, NotFoundError):
        return f"{error.kind.capitalize()} not found: {error.key}"
    if isinstance(error, DuplicateContextError):
        return f"Context already exists: {error.name}"
    if isinstance(error, LastContextError):
        return f"Cannot delete '{error.name}': it is the last remaining context"
    if isinstance(error, ActiveContextError):
        return f"Cannot delete active context '{error.name}'. Switch to another context first."
    if isinstance(error, CorruptDataError):
        return (
            f"Data file {error.path} is corrupt ({error.reason}). "
            "It was left untouched; fix or move it to continue."
        )
    if isinstance(error, IoError):
        return f"File error: {error}"
    if isinstance(error, ConfigError):
        return f"Configuration error: {error}"
    return str(error)


def display_error(error: TodoError) -> None:
    err_console.print(f"[bold red]❌ {escape(format_error(error))}[/bold red]")


# ==================== CLI Interface ====================

def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog='todo',
        description="TodoManager: tasks with time horizons, priorities and contexts"
    )
    parser.add_argument(
        '--config',
        help='Path to config file'
    )
    parser.add_argument(
        '--data-dir',
        help='Directory holding the data file (overrides config)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Log progress to stderr (-vv for debug)'
    )

    commands = parser.add_subparsers(dest='command', required=True, metavar='command')

    add = commands.add_parser('add', help='Add a task to the active context')
    add.add_argument('description', help='Task description')
    add.add_argument('-t', '--horizon', help='short, mid or long (default from config)')
    add.add_argument('-p', '--priority', help='low, medium or high (default from config)')

    list_cmd = commands.add_parser('list', help='List tasks in the active context')
    list_cmd.add_argument('-a', '--all', action='store_true', help='Include completed tasks')
    list_cmd.add_argument('-t', '--horizon', help='Only show this horizon')

    show = commands.add_parser('show', help='Show every field of a task')
    show.add_argument('id', help='Task ID or unique prefix')

    complete = commands.add_parser('complete', help='Mark a task complete')
    complete.add_argument('id', help='Task ID or unique prefix')

    edit = commands.add_parser('edit', help='Edit a task')
    edit.add_argument('id', help='Task ID or unique prefix')
    edit.add_argument('-d', '--description', help='New description')
    edit.add_argument('-t', '--horizon', help='New horizon')
    edit.add_argument('-p', '--priority', help='New priority')

    delete = commands.add_parser('delete', help='Delete a task permanently')
    delete.add_argument('id', help='Task ID or unique prefix')

    context = commands.add_parser('context', help='Manage contexts')
    actions = context.add_subparsers(dest='action', required=True, metavar='action')
    ctx_new = actions.add_parser('new', help='Create a context')
    ctx_new.add_argument('name')
    ctx_switch = actions.add_parser('switch', help='Make a context active')
    ctx_switch.add_argument('name')
    actions.add_parser('list', help='List contexts')
    ctx_delete = actions.add_parser('delete', help='Delete an inactive context and its tasks')
    ctx_delete.add_argument('name')

    export = commands.add_parser('export', help='Export all contexts to a JSON file')
    export.add_argument('path')

    import_cmd = commands.add_parser('import', help='Import a JSON export')
    import_cmd.add_argument('path')
    import_cmd.add_argument(
        '-m', '--merge',
        action='store_true',
        help='Merge into current data instead of replacing it'
    )

    return parser


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def run_command(agent: TodoManager, args) -> None:
    short_id_length = agent.config['display']['short_id_length']

    if args.command == 'add':
        task = agent.add_task(_clean(args.description), args.horizon, args.priority)
        console.print(
            f"[bold green]✓[/bold green] Task added with ID: [cyan]{escape(task.id[:short_id_length])}[/cyan]"
        )
        console.print(f"  [dim]{escape(task.description)}[/dim]")

    elif args.command == 'list':
        tasks = agent.list_tasks(horizon=args.horizon, include_completed=args.all)
        display_tasks(tasks, agent.manager.active_context, short_id_length)

    elif args.command == 'show':
        display_task_detail(agent.get_task(_clean(args.id)))

    elif args.command == 'complete':
        task = agent.complete_task(_clean(args.id))
        console.print(f"[bold green]✓[/bold green] Task completed: [dim]{escape(task.description)}[/dim]")

    elif args.command == 'edit':
        task = agent.edit_task(
            _clean(args.id),
            description=_clean(args.description),
            horizon=args.horizon,
            priority=args.priority
        )
        console.print(f"[bold green]✓[/bold green] Task updated: [dim]{escape(task.description)}[/dim]")

    elif args.command == 'delete':
        task = agent.delete_task(_clean(args.id))
        console.print(f"[bold green]✓[/bold green] Task deleted: [dim]{escape(task.description)}[/dim]")

    elif args.command == 'context':
        name = _clean(getattr(args, 'name', None))
        if args.action == 'new':
            agent.create_context(name)
            console.print(f"[bold green]✓[/bold green] Context created: [bold cyan]{escape(name)}[/bold cyan]")
        elif args.action == 'switch':
            count = agent.switch_context(name)
            console.print(
                f"[bold green]✓[/bold green] Switched to context: "
                f"[bold cyan]{escape(name)}[/bold cyan] ({count} tasks)"
            )
        elif args.action == 'list':
            display_contexts(agent.list_contexts())
        elif args.action == 'delete':
            count = agent.delete_context(name)
            console.print(
                f"[bold green]✓[/bold green] Context deleted: [dim]{escape(name)}[/dim] ({count} tasks removed)"
            )

    elif args.command == 'export':
        path = agent.export(args.path)
        console.print(f"[bold green]✓[/bold green] Data exported to: [cyan]{escape(str(path))}[/cyan]")

    elif args.command == 'import':
        display_import(agent.import_data(args.path, merge=args.merge))


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        agent = TodoManager(
            config_path=args.config,
            data_dir=args.data_dir,
            verbosity=args.verbose
        )
        run_command(agent, args)
    except TodoError as e:
        display_error(e)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
