# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Priority(StrEnum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw: object) -> Priority:
        """Unknown or missing input is treated as NONE."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return cls.NONE
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.NONE


_PRIORITY_RANK = {
    Priority.NONE: 0,
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


class SortMode(StrEnum):
    CREATED_ASC = "created_asc"
    CREATED_DESC = "created_desc"
    DUE_ASC = "due_asc"
    DUE_DESC = "due_desc"
    PRIORITY_DESC = "priority_desc"


class Theme(StrEnum):
    DARK = "dark"
    PASTEL = "pastel"
    SAGE = "sage"
    PEACH = "peach"
    PINK = "pink"
    BLACK = "black"
    COFFEE = "coffee"
    SUNSET = "sunset"


class RecurrenceKind(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


DEFAULT_THEME = Theme.DARK
DEFAULT_SORT = SortMode.CREATED_DESC


@dataclass(slots=True)
class Subtask:
    id: str
    title: str
    completed: bool = False


@dataclass(slots=True, frozen=True)
class Recurrence:
    """
    Repeat rule attached to a task.

    `count` is carried for forward compatibility; nothing caps the number of
    generated occurrences yet.
    """

    kind: RecurrenceKind
    interval: int = 1
    count: int | None = None

    @property
    def effective_interval(self) -> int:
        return max(1, int(self.interval))


@dataclass(slots=True)
class Task:
    id: str
    title: str
    created_at: int  # epoch milliseconds
    completed: bool = False
    due_at: int | None = None  # epoch milliseconds
    priority: Priority = Priority.NONE
    tags: list[str] = field(default_factory=list)
    project_id: str | None = None
    subtasks: list[Subtask] = field(default_factory=list)
    recurrence: Recurrence | None = None

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on title or any tag. `needle` must be case-folded."""
        if needle in self.title.casefold():
            return True
        return any(needle in tag.casefold() for tag in self.tags)


@dataclass(slots=True)
class Project:
    id: str
    name: str
    color: str | None = None


@dataclass(slots=True)
class UserSettings:
    theme: Theme = DEFAULT_THEME
    sort: SortMode = DEFAULT_SORT
    active_project_id: str | None = None


@dataclass(slots=True)
class TrackerState:
    """The whole persisted aggregate: what lives under the storage key."""

    tasks: list[Task] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    settings: UserSettings = field(default_factory=UserSettings)

    def find_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def find_project(self, project_id: str | None) -> Project | None:
        if not project_id:
            return None
        for p in self.projects:
            if p.id == project_id:
                return p
        return None
