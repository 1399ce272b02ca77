# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksync.tasks.task_store import TaskStore

from .fakes import FakeDocumentStore, FakeIdentityGate

TASKS_PATH = "users/u1/tasks"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment/.env.
    """
    return SimpleNamespace(
        app_name="tasksync-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        console_enabled=False,
        backend="memory",
        users_collection="users",
        tasks_collection="tasks",
        firebase_api_key=None,
        firebase_project_id=None,
        firebase_credentials_path=None,
        auth_timeout_seconds=5.0,
    )


@pytest.fixture()
def documents() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture()
def identity() -> FakeIdentityGate:
    return FakeIdentityGate(uid="u1")


@pytest.fixture()
def store(documents: FakeDocumentStore, identity: FakeIdentityGate) -> TaskStore:
    """
    TaskStore wired with a recording document store.
    Constructing it needs no event loop; load()/writes do.
    """
    return TaskStore(documents, identity)
