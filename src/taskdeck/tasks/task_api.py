# src/taskdeck/tasks/task_api.py

"""
Command dispatch.

The presentation layer never calls into TaskStore directly: it builds one of
the command dataclasses below and hands it to `dispatch`, which returns an
Outcome. Validation failures come back as a notice for the user instead of
an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..errors import ValidationError
from .task_models import Recurrence
from .task_store import UNSET, TaskStore

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AddTask:
    title: str
    due_at: int | None = None
    priority: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ToggleTask:
    task_id: str


@dataclass(slots=True, frozen=True)
class EditTask:
    task_id: str
    title: str | None = None
    due_at: Any = UNSET
    priority: str | None = None
    tags: tuple[str, ...] | None = None


@dataclass(slots=True, frozen=True)
class DeleteTask:
    task_id: str


@dataclass(slots=True, frozen=True)
class ClearCompleted:
    pass


@dataclass(slots=True, frozen=True)
class AddProject:
    name: str
    color: str | None = None


@dataclass(slots=True, frozen=True)
class RenameProject:
    project_id: str
    name: str


@dataclass(slots=True, frozen=True)
class DeleteProject:
    project_id: str


@dataclass(slots=True, frozen=True)
class SelectProject:
    project_id: str | None


@dataclass(slots=True, frozen=True)
class SetSort:
    mode: str


@dataclass(slots=True, frozen=True)
class SetTheme:
    theme: str


@dataclass(slots=True, frozen=True)
class AddSubtask:
    task_id: str
    title: str


@dataclass(slots=True, frozen=True)
class ToggleSubtask:
    task_id: str
    subtask_id: str


@dataclass(slots=True, frozen=True)
class DeleteSubtask:
    task_id: str
    subtask_id: str


@dataclass(slots=True, frozen=True)
class SetRecurrence:
    task_id: str
    rule: Recurrence | None


Command = (
    AddTask
    | ToggleTask
    | EditTask
    | DeleteTask
    | ClearCompleted
    | AddProject
    | RenameProject
    | DeleteProject
    | SelectProject
    | SetSort
    | SetTheme
    | AddSubtask
    | ToggleSubtask
    | DeleteSubtask
    | SetRecurrence
)


@dataclass(slots=True, frozen=True)
class Outcome:
    """
    Result of a dispatched command.

    ok=False with a notice means the command was rejected and nothing changed.
    ok=False without a notice means the target did not exist (silently ignored).
    """

    ok: bool
    notice: str | None = None
    result: Any = None


def _handlers() -> dict[type, Callable[[TaskStore, Any], Any]]:
    return {
        AddTask: lambda s, c: s.add_task(c.title, due_at=c.due_at, priority=c.priority, tags=c.tags),
        ToggleTask: lambda s, c: s.toggle_task(c.task_id),
        EditTask: lambda s, c: s.edit_task(
            c.task_id, title=c.title, due_at=c.due_at, priority=c.priority, tags=c.tags
        ),
        DeleteTask: lambda s, c: s.delete_task(c.task_id),
        ClearCompleted: lambda s, c: s.clear_completed(),
        AddProject: lambda s, c: s.add_project(c.name, color=c.color),
        RenameProject: lambda s, c: s.rename_project(c.project_id, c.name),
        DeleteProject: lambda s, c: s.delete_project(c.project_id),
        SelectProject: lambda s, c: s.set_active_project(c.project_id),
        SetSort: lambda s, c: s.set_sort(c.mode),
        SetTheme: lambda s, c: s.set_theme(c.theme),
        AddSubtask: lambda s, c: s.add_subtask(c.task_id, c.title),
        ToggleSubtask: lambda s, c: s.toggle_subtask(c.task_id, c.subtask_id),
        DeleteSubtask: lambda s, c: s.delete_subtask(c.task_id, c.subtask_id),
        SetRecurrence: lambda s, c: s.set_recurrence(c.task_id, c.rule),
    }


_HANDLERS = _handlers()


def dispatch(store: TaskStore, command: Command) -> Outcome:
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unsupported command: {type(command).__name__}")
    try:
        result = handler(store, command)
    except ValidationError as e:
        logger.debug("Command rejected %s: %s", type(command).__name__, e)
        return Outcome(ok=False, notice=str(e))
    # Store methods report "not found" as None/False; SelectProject returns None on success.
    ok = result is not False and not (result is None and not isinstance(command, SelectProject))
    return Outcome(ok=ok, result=result)
