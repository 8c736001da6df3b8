# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- picks the key-value backend and wires the TaskStore into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import KeyValueStore
from ..core.state import AppState
from ..storage.kv_store import JsonFileKVStore, SqliteKVStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_kv_store(settings) -> KeyValueStore:
    backend = str(getattr(settings, "storage_backend", "sqlite")).lower()
    if backend == "json":
        return JsonFileKVStore(settings.storage_path)
    if backend != "sqlite":
        logger.warning("Unknown storage backend %r; using sqlite.", backend)
    return SqliteKVStore(settings.storage_path)


def create_initial_state(*, settings=None, kv: KeyValueStore | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and the key-value backend are injectable so tests can avoid
    touching the real data directory. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if kv is None:
        _ensure_local_dirs(settings)
        kv = create_kv_store(settings)

    store = TaskStore(kv, key=settings.storage_key)
    return AppState(settings=settings, store=store)
