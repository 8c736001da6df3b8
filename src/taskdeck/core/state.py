# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    """Everything a connector needs: settings, the store and transient view state."""

    settings: object
    store: TaskStore

    # Current search text. View state only, never persisted.
    query: str = ""

    # Last rendered list; numeric task references ("/done 2") resolve against it.
    last_view: list[Task] = field(default_factory=list)

    def refresh_view(self) -> list[Task]:
        self.last_view = self.store.visible_tasks(self.query)
        return self.last_view
