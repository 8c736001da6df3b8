# src/taskdeck/tasks/codec.py

"""
Storage codec: TrackerState <-> one JSON blob under a fixed key.

Decoding is defensive. Anything that does not look like a saved state is
treated as "no prior state" and every field is coerced to a sane value, so
a hand-edited or truncated blob never takes the app down.
"""

from __future__ import annotations

import json
import logging
import math
import time
import uuid
from typing import Any, Callable

from ..core.ports import KeyValueStore
from .task_models import (
    DEFAULT_SORT,
    DEFAULT_THEME,
    Priority,
    Project,
    Recurrence,
    RecurrenceKind,
    SortMode,
    Subtask,
    Task,
    Theme,
    TrackerState,
    UserSettings,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "td.todos.v2"


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


# ---- encoding ----


def _subtask_to_dict(s: Subtask) -> dict[str, Any]:
    return {"id": s.id, "title": s.title, "completed": s.completed}


def _recurrence_to_dict(r: Recurrence) -> dict[str, Any]:
    out: dict[str, Any] = {"type": r.kind.value, "interval": r.interval}
    if r.count is not None:
        out["count"] = r.count
    return out


def task_to_dict(t: Task) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": t.id,
        "title": t.title,
        "completed": t.completed,
        "createdAt": t.created_at,
        "dueAt": t.due_at,
        "priority": t.priority.value,
        "tags": list(t.tags),
        "projectId": t.project_id,
        "subtasks": [_subtask_to_dict(s) for s in t.subtasks],
    }
    if t.recurrence is not None:
        out["recurrence"] = _recurrence_to_dict(t.recurrence)
    return out


def project_to_dict(p: Project) -> dict[str, Any]:
    out: dict[str, Any] = {"id": p.id, "name": p.name}
    if p.color is not None:
        out["color"] = p.color
    return out


def state_to_dict(state: TrackerState) -> dict[str, Any]:
    return {
        "todos": [task_to_dict(t) for t in state.tasks],
        "projects": [project_to_dict(p) for p in state.projects],
        "settings": {
            "theme": state.settings.theme.value,
            "sort": state.settings.sort.value,
            "activeProjectId": state.settings.active_project_id,
        },
    }


def encode_state(state: TrackerState) -> str:
    return json.dumps(state_to_dict(state), ensure_ascii=False, separators=(",", ":"))


# ---- decoding ----


def _as_id(raw: Any, id_factory: Callable[[], str]) -> str:
    if raw is None or raw == "":
        return id_factory()
    return str(raw)


def _as_ms(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        val = float(raw)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(val):
        return None
    return int(val)


def _as_optional_str(raw: Any) -> str | None:
    if raw is None or raw == "":
        return None
    return str(raw)


def _decode_recurrence(raw: Any) -> Recurrence | None:
    if not isinstance(raw, dict):
        return None
    try:
        kind = RecurrenceKind(str(raw.get("type", "")))
    except ValueError:
        logger.debug("Dropping recurrence with unknown type=%r", raw.get("type"))
        return None
    interval = _as_ms(raw.get("interval"))
    count = _as_ms(raw.get("count"))
    return Recurrence(
        kind=kind,
        interval=interval if interval is not None else 1,
        count=count if count is not None and count > 0 else None,
    )


def _decode_subtask(raw: Any, id_factory: Callable[[], str]) -> Subtask | None:
    if not isinstance(raw, dict):
        return None
    return Subtask(
        id=_as_id(raw.get("id"), id_factory),
        title=str(raw.get("title") or ""),
        completed=bool(raw.get("completed") or False),
    )


def _decode_task(raw: Any, *, clock: Callable[[], int], id_factory: Callable[[], str]) -> Task | None:
    if not isinstance(raw, dict):
        return None
    created_at = _as_ms(raw.get("createdAt"))
    tags_raw = raw.get("tags")
    subtasks_raw = raw.get("subtasks")
    subtasks: list[Subtask] = []
    if isinstance(subtasks_raw, list):
        for s in subtasks_raw:
            sub = _decode_subtask(s, id_factory)
            if sub is not None:
                subtasks.append(sub)
    return Task(
        id=_as_id(raw.get("id"), id_factory),
        title=str(raw.get("title") or ""),
        completed=bool(raw.get("completed") or False),
        created_at=created_at if created_at is not None else clock(),
        due_at=_as_ms(raw.get("dueAt")),
        priority=Priority.parse(raw.get("priority")),
        tags=[str(tag) for tag in tags_raw] if isinstance(tags_raw, list) else [],
        project_id=_as_optional_str(raw.get("projectId")),
        subtasks=subtasks,
        recurrence=_decode_recurrence(raw.get("recurrence")),
    )


def _decode_project(raw: Any, id_factory: Callable[[], str]) -> Project | None:
    if not isinstance(raw, dict):
        return None
    color = raw.get("color")
    return Project(
        id=_as_id(raw.get("id"), id_factory),
        name=str(raw.get("name") or "Untitled"),
        color=str(color) if color else None,
    )


def _decode_settings(raw: Any) -> UserSettings:
    if not isinstance(raw, dict):
        return UserSettings()
    try:
        theme = Theme(raw.get("theme"))
    except (TypeError, ValueError):
        theme = DEFAULT_THEME
    try:
        sort = SortMode(raw.get("sort"))
    except (TypeError, ValueError):
        sort = DEFAULT_SORT
    return UserSettings(
        theme=theme,
        sort=sort,
        active_project_id=_as_optional_str(raw.get("activeProjectId")),
    )


def state_from_dict(
    data: Any,
    *,
    clock: Callable[[], int] = now_ms,
    id_factory: Callable[[], str] = new_id,
) -> TrackerState:
    if not isinstance(data, dict):
        return TrackerState()

    tasks: list[Task] = []
    todos_raw = data.get("todos")
    if isinstance(todos_raw, list):
        for item in todos_raw:
            task = _decode_task(item, clock=clock, id_factory=id_factory)
            if task is not None:
                tasks.append(task)

    projects: list[Project] = []
    projects_raw = data.get("projects")
    if isinstance(projects_raw, list):
        for item in projects_raw:
            project = _decode_project(item, id_factory)
            if project is not None:
                projects.append(project)

    return TrackerState(tasks=tasks, projects=projects, settings=_decode_settings(data.get("settings")))


def decode_state(
    raw: str | None,
    *,
    clock: Callable[[], int] = now_ms,
    id_factory: Callable[[], str] = new_id,
) -> TrackerState:
    """Never raises: malformed input yields an empty default state."""
    if not raw:
        return TrackerState()
    try:
        return state_from_dict(json.loads(raw), clock=clock, id_factory=id_factory)
    except Exception:
        logger.warning("Failed to decode stored state; starting empty.", exc_info=True)
        return TrackerState()


# ---- key-value helpers ----


def load_state(
    kv: KeyValueStore,
    key: str = STORAGE_KEY,
    *,
    clock: Callable[[], int] = now_ms,
    id_factory: Callable[[], str] = new_id,
) -> TrackerState:
    try:
        raw = kv.get_item(key)
    except Exception:
        logger.warning("Failed to read stored state key=%s; starting empty.", key, exc_info=True)
        return TrackerState()
    state = decode_state(raw, clock=clock, id_factory=id_factory)
    logger.debug(
        "Loaded state key=%s tasks=%d projects=%d", key, len(state.tasks), len(state.projects)
    )
    return state


def save_state(kv: KeyValueStore, state: TrackerState, key: str = STORAGE_KEY) -> None:
    kv.set_item(key, encode_state(state))
