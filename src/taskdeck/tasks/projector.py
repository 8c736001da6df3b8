# src/taskdeck/tasks/projector.py

"""
View projection: the filter + search + sort pipeline behind the task list.

Pure functions only. Nothing here mutates tasks or touches storage.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence

from .task_models import Project, SortMode, Task, UserSettings

SortKey = Callable[[Task], float]


def effective_active_project_id(settings: UserSettings, projects: Iterable[Project]) -> str | None:
    """The stored active project id, or None if that project no longer exists."""
    pid = settings.active_project_id
    if not pid:
        return None
    return pid if any(p.id == pid for p in projects) else None


def _created(t: Task) -> float:
    return float(t.created_at)


def _created_desc(t: Task) -> float:
    return -float(t.created_at)


def _due_asc(t: Task) -> float:
    return math.inf if t.due_at is None else float(t.due_at)


def _due_desc(t: Task) -> float:
    return math.inf if t.due_at is None else -float(t.due_at)


def _priority_desc(t: Task) -> float:
    return -float(t.priority.rank)


# Undated tasks sort last in both due orders.
_SORT_KEYS: dict[SortMode, SortKey] = {
    SortMode.CREATED_ASC: _created,
    SortMode.CREATED_DESC: _created_desc,
    SortMode.DUE_ASC: _due_asc,
    SortMode.DUE_DESC: _due_desc,
    SortMode.PRIORITY_DESC: _priority_desc,
}


def sort_tasks(tasks: Iterable[Task], mode: SortMode | str) -> list[Task]:
    """Stable sort; an unknown mode keeps the input order."""
    try:
        key = _SORT_KEYS[SortMode(mode)]
    except ValueError:
        return list(tasks)
    return sorted(tasks, key=key)


def search_tasks(tasks: Iterable[Task], query: str | None) -> list[Task]:
    needle = (query or "").casefold()
    if not needle:
        return list(tasks)
    return [t for t in tasks if t.matches(needle)]


def project_view(
    tasks: Sequence[Task],
    active_project_id: str | None,
    query: str | None = None,
    sort_mode: SortMode | str = SortMode.CREATED_DESC,
) -> list[Task]:
    """
    Visible, ordered task list for one project.

    `active_project_id` must already be the effective one
    (see effective_active_project_id); None yields an empty view.
    """
    if not active_project_id:
        return []
    scoped = [t for t in tasks if t.project_id == active_project_id]
    return sort_tasks(search_tasks(scoped, query), sort_mode)
