"""
JSON persistence for the context manager

The whole state lives in one pretty-printed JSON document. Saves are atomic:
the document is written to a temporary file in the target directory, flushed
to disk and then renamed over the target, so the file on disk is always
either the previous snapshot or the new one.

Document layout:
    {
      "schema_version": 1,
      "active_context": "default",
      "contexts": [{"name": "default", "tasks": [...]}]
    }
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from .context import Context, ContextManager
from .errors import CorruptDataError, IoError, ValidationError
from .task import Task

SCHEMA_VERSION = 1

PathLike = Union[str, Path]


class ImportMode(Enum):
    REPLACE = 'replace'
    MERGE = 'merge'

    @classmethod
    def parse(cls, value: Union['ImportMode', str]) -> 'ImportMode':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Invalid import mode: '{value}' (expected replace or merge)", value=str(value)
            ) from None


@dataclass
class ImportSummary:
    """What an import changed; renamed holds (original_name, new_name) pairs"""
    contexts_added: int = 0
    contexts_renamed: int = 0
    tasks_imported: int = 0
    renamed: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class ImportResult:
    manager: ContextManager
    summary: ImportSummary
    mode: ImportMode


def atomic_write_text(path: Path, text: str, *, encoding: str = 'utf-8') -> None:
    """
    Replace path with text via temp file + rename in the same directory

    Raises:
        IoError: if any step fails; the temp file is removed and the
            target keeps its previous content
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=path.name + '.', suffix='.tmp', dir=str(path.parent))
    except OSError as e:
        raise IoError(path, f"Cannot create temporary file ({e.strerror or e})") from e

    try:
        try:
            f = os.fdopen(fd, 'w', encoding=encoding)
        except Exception:
            os.close(fd)
            raise
        with f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except UnicodeEncodeError as e:
        raise IoError(path, f"Cannot encode data as {encoding} ({e.reason})") from e
    except OSError as e:
        raise IoError(path, f"Failed to write ({e.strerror or e})") from e
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)


class Store:
    """Reads and writes the context manager state file"""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self.logger = logging.getLogger("TodoManager.Store")

    # ==================== Serialization ====================

    @staticmethod
    def to_document(manager: ContextManager) -> Dict[str, Any]:
        return {
            'schema_version': SCHEMA_VERSION,
            'active_context': manager.active_context,
            'contexts': [
                {
                    'name': context.name,
                    'tasks': [task.to_dict() for task in context.tasks]
                }
                for context in manager.contexts.values()
            ]
        }

    @staticmethod
    def dumps(manager: ContextManager) -> str:
        return json.dumps(Store.to_document(manager), ensure_ascii=False, indent=2) + '\n'

    @staticmethod
    def from_document(data: Any, source: PathLike) -> ContextManager:
        """
        Validate a parsed document and build a ContextManager from it

        Raises:
            CorruptDataError: on any schema violation
        """
        if not isinstance(data, dict):
            raise CorruptDataError(source, "top-level value must be an object")

        version = data.get('schema_version')
        if version is None:
            raise CorruptDataError(source, "missing schema_version")
        if not isinstance(version, int) or isinstance(version, bool) or version != SCHEMA_VERSION:
            raise CorruptDataError(
                source, f"unsupported schema_version {version!r} (expected {SCHEMA_VERSION})"
            )

        raw_contexts = data.get('contexts')
        if not isinstance(raw_contexts, list):
            raise CorruptDataError(source, "'contexts' must be a list")
        if not raw_contexts:
            raise CorruptDataError(source, "document contains no contexts")

        active = data.get('active_context')
        if not isinstance(active, str):
            raise CorruptDataError(source, "'active_context' must be a string")

        contexts: List[Context] = []
        seen = set()
        for index, raw in enumerate(raw_contexts):
            try:
                if not isinstance(raw, dict):
                    raise TypeError("context entry must be an object")
                if not isinstance(raw.get('name'), str):
                    raise TypeError("context name must be a string")
                raw_tasks = raw.get('tasks', [])
                if not isinstance(raw_tasks, list):
                    raise TypeError("'tasks' must be a list")
                for raw_task in raw_tasks:
                    if not isinstance(raw_task, dict):
                        raise TypeError("task entry must be an object")
                context = Context(raw.get('name'), [Task.from_dict(t) for t in raw_tasks])
            except KeyError as e:
                raise CorruptDataError(source, f"context #{index}: missing field {e}") from e
            except (TypeError, ValueError, ValidationError) as e:
                raise CorruptDataError(source, f"context #{index}: {e}") from e

            if context.name in seen:
                raise CorruptDataError(source, f"duplicate context name '{context.name}'")
            seen.add(context.name)
            contexts.append(context)

        if active not in seen:
            raise CorruptDataError(
                source, f"active context '{active}' does not exist in contexts"
            )

        return ContextManager(contexts, active_context=active)

    def _read_document(self, path: Path) -> ContextManager:
        try:
            text = path.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise CorruptDataError(path, f"not valid UTF-8 ({e})") from e
        except OSError as e:
            raise IoError(path, f"Failed to read ({e.strerror or e})") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptDataError(path, f"invalid JSON ({e})") from e

        return self.from_document(data, path)

    # ==================== Load / Save ====================

    def load(self) -> ContextManager:
        """
        Load state from disk

        A missing file yields a fresh manager holding one active 'default'
        context. A corrupt file is reported and left exactly as it is.

        Raises:
            IoError: the file exists but cannot be read
            CorruptDataError: the file is not a valid document
        """
        if not self.path.exists():
            self.logger.info(f"No data file at {self.path}, starting with a fresh state")
            return ContextManager()

        try:
            manager = self._read_document(self.path)
        except CorruptDataError as e:
            self.logger.error(f"Refusing to load corrupt data file: {e.reason}")
            raise

        self.logger.info(
            f"Loaded {len(manager)} contexts and {manager.total_tasks} tasks from {self.path}"
        )
        return manager

    def save(self, manager: ContextManager) -> None:
        """Atomically write the manager to the state file"""
        atomic_write_text(self.path, self.dumps(manager))
        self.logger.info(f"Saved {len(manager)} contexts to {self.path}")

    def export(self, manager: ContextManager, path: PathLike) -> Path:
        """
        Write every context (not just the active one) to an arbitrary path

        Returns:
            The path written
        """
        target = Path(path)
        atomic_write_text(target, self.dumps(manager))
        self.logger.info(f"Exported {len(manager)} contexts to {target}")
        return target

    # ==================== Import ====================

    def import_data(
        self,
        path: PathLike,
        mode: Union[ImportMode, str],
        manager: ContextManager
    ) -> ImportResult:
        """
        Import a document into the live state

        The whole document is validated before anything changes.

        Args:
            path: Document to import; must exist
            mode: REPLACE supersedes the live manager, MERGE adds every
                imported context to it, renaming on name collisions
            manager: The live manager (mutated in merge mode)

        Returns:
            ImportResult with the manager to keep using and a summary

        Raises:
            ValidationError: unknown mode
            IoError: the file cannot be read
            CorruptDataError: the file is not a valid document
        """
        mode = ImportMode.parse(mode)
        source = Path(path)
        if not source.exists():
            raise IoError(source, "Import file not found")

        imported = self._read_document(source)

        if mode is ImportMode.REPLACE:
            summary = ImportSummary(
                contexts_added=len(imported),
                tasks_imported=imported.total_tasks
            )
            self.logger.info(
                f"Replaced state with {summary.contexts_added} contexts from {source}"
            )
            return ImportResult(manager=imported, summary=summary, mode=mode)

        summary = self.merge(manager, imported)
        self.logger.info(
            f"Merged {summary.contexts_added} contexts ({summary.contexts_renamed} renamed, "
            f"{summary.tasks_imported} tasks) from {source}"
        )
        return ImportResult(manager=manager, summary=summary, mode=mode)

    @staticmethod
    def unique_name(name: str, taken) -> str:
        """Return name, or name-2, name-3, ... whichever is first free"""
        if name not in taken:
            return name
        counter = 2
        while f"{name}-{counter}" in taken:
            counter += 1
        return f"{name}-{counter}"

    def merge(self, manager: ContextManager, imported: ContextManager) -> ImportSummary:
        """
        Add every context of imported into manager as a whole unit

        Colliding names get a numeric suffix instead of overwriting; task
        ids are kept; the active context of manager does not change.
        """
        summary = ImportSummary()
        for context in list(imported.contexts.values()):
            new_name = self.unique_name(context.name, manager.contexts)
            if new_name != context.name:
                self.logger.warning(
                    f"Context '{context.name}' already exists, importing as '{new_name}'"
                )
                summary.renamed.append((context.name, new_name))
                summary.contexts_renamed += 1
                context.name = new_name
            manager.insert_context(context)
            summary.contexts_added += 1
            summary.tasks_imported += len(context)
        return summary
