# src/taskdeck/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from ..core.ports import KeyValueStore, StateListener
from ..errors import ValidationError
from .codec import STORAGE_KEY, load_state, new_id, now_ms, save_state
from .projector import effective_active_project_id, project_view
from .recurrence import expand_next
from .task_models import (
    Priority,
    Project,
    Recurrence,
    SortMode,
    Subtask,
    Task,
    Theme,
    TrackerState,
)

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()
# Marks "leave this field alone" where None is a meaningful value (due_at).


class ChangeKind(StrEnum):
    TASK_ADDED = "task_added"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    TASKS_CLEARED = "tasks_cleared"
    PROJECT_ADDED = "project_added"
    PROJECT_UPDATED = "project_updated"
    PROJECT_DELETED = "project_deleted"
    SETTINGS_CHANGED = "settings_changed"


@dataclass(slots=True, frozen=True)
class StateChange:
    """Notification sent to subscribers after a mutation has been written."""

    kind: ChangeKind
    ids: tuple[str, ...] = ()


def _clean_tags(tags: Iterable[str] | None) -> list[str]:
    if not tags:
        return []
    return [s for s in (str(t).strip() for t in tags) if s]


class TaskStore:
    """
    In-memory task/project state with write-through persistence.

    Every mutating method:
    - validates input (ValidationError, nothing changes),
    - applies the change to the owned TrackerState,
    - writes the whole state under one key,
    - notifies subscribers.

    Lookups by id are linear scans over the ordered collections.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        key: str = STORAGE_KEY,
        clock: Callable[[], int] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._kv = kv
        self._key = key
        self._clock = clock or now_ms
        self._new_id = id_factory or new_id
        self._listeners: list[StateListener] = []
        self._state = load_state(kv, key, clock=self._clock, id_factory=self._new_id)
        logger.info(
            "TaskStore ready key=%s tasks=%d projects=%d",
            key,
            len(self._state.tasks),
            len(self._state.projects),
        )

    # ---- read side ----

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def tasks(self) -> list[Task]:
        return self._state.tasks

    @property
    def projects(self) -> list[Project]:
        return self._state.projects

    def get_task(self, task_id: str) -> Task | None:
        return self._state.find_task(task_id)

    def effective_active_project_id(self) -> str | None:
        return effective_active_project_id(self._state.settings, self._state.projects)

    def active_project(self) -> Project | None:
        return self._state.find_project(self.effective_active_project_id())

    def visible_tasks(self, query: str | None = None) -> list[Task]:
        return project_view(
            self._state.tasks,
            self.effective_active_project_id(),
            query,
            self._state.settings.sort,
        )

    # ---- subscriptions ----

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self, kind: ChangeKind, *ids: str) -> None:
        save_state(self._kv, self._state, self._key)
        change = StateChange(kind=kind, ids=tuple(ids))
        logger.debug("State committed kind=%s ids=%s", kind.value, ids)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("State listener failed kind=%s", kind.value)

    # ---- tasks ----

    def add_task(
        self,
        title: str,
        *,
        due_at: int | None = None,
        priority: Priority | str | None = None,
        tags: Iterable[str] | None = None,
    ) -> Task:
        project_id = self.effective_active_project_id()
        if project_id is None:
            raise ValidationError("Create or select a project first.")
        trimmed = (title or "").strip()
        if not trimmed:
            raise ValidationError("Task title is required.")

        task = Task(
            id=self._new_id(),
            title=trimmed,
            created_at=self._clock(),
            due_at=due_at,
            priority=Priority.parse(priority),
            tags=_clean_tags(tags),
            project_id=project_id,
        )
        self._state.tasks.insert(0, task)
        self._commit(ChangeKind.TASK_ADDED, task.id)
        logger.debug("Task added id=%s project=%s", task.id, project_id)
        return task

    def toggle_task(self, task_id: str) -> Task | None:
        task = self._state.find_task(task_id)
        if task is None:
            return None
        # Expand before flipping: an out-of-range next date must leave the task as it was.
        nxt = None if task.completed else expand_next(task, now_ms=self._clock(), id_factory=self._new_id)
        task.completed = not task.completed
        ids = [task.id]
        if nxt is not None:
            self._state.tasks.append(nxt)
            ids.append(nxt.id)
            logger.info("Recurring task id=%s spawned next id=%s due_at=%s", task.id, nxt.id, nxt.due_at)
        self._commit(ChangeKind.TASK_UPDATED, *ids)
        return task

    def edit_task(
        self,
        task_id: str,
        *,
        title: str | None = None,
        due_at: int | None | _Unset = UNSET,
        priority: Priority | str | None = None,
        tags: Iterable[str] | None = None,
    ) -> bool:
        """
        Update fields in place. Arguments left at their defaults are untouched;
        pass due_at=None to clear the due date.

        Returns False (and changes nothing) when the task is missing or the
        new title is blank.
        """
        task = self._state.find_task(task_id)
        if task is None:
            return False
        new_title: str | None = None
        if title is not None:
            new_title = title.strip()
            if not new_title:
                return False

        if new_title is not None:
            task.title = new_title
        if not isinstance(due_at, _Unset):
            task.due_at = due_at
        if priority is not None:
            task.priority = Priority.parse(priority)
        if tags is not None:
            task.tags = _clean_tags(tags)
        self._commit(ChangeKind.TASK_UPDATED, task.id)
        return True

    def delete_task(self, task_id: str) -> bool:
        before = len(self._state.tasks)
        self._state.tasks = [t for t in self._state.tasks if t.id != task_id]
        if len(self._state.tasks) == before:
            return False
        self._commit(ChangeKind.TASK_DELETED, task_id)
        return True

    def clear_completed(self) -> int:
        removed = [t.id for t in self._state.tasks if t.completed]
        if not removed:
            return 0
        self._state.tasks = [t for t in self._state.tasks if not t.completed]
        self._commit(ChangeKind.TASKS_CLEARED, *removed)
        logger.info("Cleared %d completed tasks", len(removed))
        return len(removed)

    def set_recurrence(self, task_id: str, rule: Recurrence | None) -> bool:
        task = self._state.find_task(task_id)
        if task is None:
            return False
        task.recurrence = rule
        self._commit(ChangeKind.TASK_UPDATED, task.id)
        return True

    # ---- subtasks ----

    def add_subtask(self, task_id: str, title: str) -> Subtask | None:
        task = self._state.find_task(task_id)
        if task is None:
            return None
        trimmed = (title or "").strip()
        if not trimmed:
            raise ValidationError("Subtask title is required.")
        sub = Subtask(id=self._new_id(), title=trimmed)
        task.subtasks.append(sub)
        self._commit(ChangeKind.TASK_UPDATED, task.id)
        return sub

    def toggle_subtask(self, task_id: str, subtask_id: str) -> Subtask | None:
        task = self._state.find_task(task_id)
        if task is None:
            return None
        for sub in task.subtasks:
            if sub.id == subtask_id:
                sub.completed = not sub.completed
                self._commit(ChangeKind.TASK_UPDATED, task.id)
                return sub
        return None

    def delete_subtask(self, task_id: str, subtask_id: str) -> bool:
        task = self._state.find_task(task_id)
        if task is None:
            return False
        kept = [s for s in task.subtasks if s.id != subtask_id]
        if len(kept) == len(task.subtasks):
            return False
        task.subtasks = kept
        self._commit(ChangeKind.TASK_UPDATED, task.id)
        return True

    # ---- projects ----

    def add_project(self, name: str, *, color: str | None = None) -> Project:
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Project name is required.")
        project = Project(id=self._new_id(), name=trimmed, color=color or None)
        self._state.projects.append(project)
        self._state.settings.active_project_id = project.id
        self._commit(ChangeKind.PROJECT_ADDED, project.id)
        logger.debug("Project added id=%s name=%s", project.id, trimmed)
        return project

    def rename_project(self, project_id: str, name: str) -> bool:
        project = self._state.find_project(project_id)
        if project is None:
            return False
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Project name is required.")
        project.name = trimmed
        self._commit(ChangeKind.PROJECT_UPDATED, project.id)
        return True

    def delete_project(self, project_id: str) -> bool:
        """Remove a project. Its tasks are kept but become unassigned."""
        if self._state.find_project(project_id) is None:
            return False
        self._state.projects = [p for p in self._state.projects if p.id != project_id]
        orphaned = 0
        for t in self._state.tasks:
            if t.project_id == project_id:
                t.project_id = None
                orphaned += 1
        if self._state.settings.active_project_id == project_id:
            self._state.settings.active_project_id = None
        self._commit(ChangeKind.PROJECT_DELETED, project_id)
        logger.info("Project deleted id=%s unassigned_tasks=%d", project_id, orphaned)
        return True

    # ---- settings ----

    def set_active_project(self, project_id: str | None) -> None:
        # Not validated here; readers go through effective_active_project_id().
        self._state.settings.active_project_id = project_id or None
        self._commit(ChangeKind.SETTINGS_CHANGED)

    def set_sort(self, mode: SortMode | str) -> SortMode:
        try:
            parsed = SortMode(mode)
        except ValueError:
            choices = ", ".join(m.value for m in SortMode)
            raise ValidationError(f"Unknown sort mode {mode!r}. Choose one of: {choices}.") from None
        self._state.settings.sort = parsed
        self._commit(ChangeKind.SETTINGS_CHANGED)
        return parsed

    def set_theme(self, theme: Theme | str) -> Theme:
        try:
            parsed = Theme(theme)
        except ValueError:
            choices = ", ".join(t.value for t in Theme)
            raise ValidationError(f"Unknown theme {theme!r}. Choose one of: {choices}.") from None
        self._state.settings.theme = parsed
        self._commit(ChangeKind.SETTINGS_CHANGED)
        return parsed
