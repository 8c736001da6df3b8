# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.core.state import AppState
from taskdeck.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeKVStore, SequentialIds


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="taskdeck-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        storage_backend="sqlite",
        storage_path=tmp_path / "taskdeck.sqlite3",
        storage_key="td.todos.v2",
    )


@pytest.fixture()
def kv() -> FakeKVStore:
    return FakeKVStore()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture()
def store(kv: FakeKVStore, clock: FakeClock, ids: SequentialIds) -> TaskStore:
    return TaskStore(kv, clock=clock, id_factory=ids)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    return AppState(settings=settings, store=store)
