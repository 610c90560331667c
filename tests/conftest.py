"""
Shared fixtures for todo-manager tests
"""

import json

import pytest


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real config and data directories"""
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'xdg-config'))
    monkeypatch.setenv('XDG_DATA_HOME', str(tmp_path / 'xdg-data'))
    monkeypatch.delenv('TODO_CONFIG', raising=False)
    monkeypatch.delenv('TODO_DATA_DIR', raising=False)


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / 'data' / 'data.json'


@pytest.fixture
def write_json(tmp_path):
    """Write a Python object (or raw text) to a file under tmp_path"""
    def _write(name, payload):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(payload, str):
            path.write_text(payload)
        else:
            path.write_text(json.dumps(payload, indent=2))
        return path
    return _write


def make_task_dict(task_id, description='Imported task', horizon='short', priority='medium',
                   completed=False, created_at='2024-01-15T10:30:00+00:00'):
    return {
        'id': task_id,
        'description': description,
        'horizon': horizon,
        'priority': priority,
        'completed': completed,
        'created_at': created_at,
        'updated_at': created_at,
    }


def make_document(contexts, active, version=1):
    """contexts: {name: [task dicts]}"""
    return {
        'schema_version': version,
        'active_context': active,
        'contexts': [{'name': name, 'tasks': tasks} for name, tasks in contexts.items()],
    }
