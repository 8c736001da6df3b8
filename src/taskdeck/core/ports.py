# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store depends on Protocols instead of concrete backends.
This keeps storage swappable and lets tests run against in-memory fakes.
"""

from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_store import StateChange


class KeyValueStore(Protocol):
    """
    String-keyed persistence facility (think browser localStorage).

    get_item returns None for a missing key.
    """

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


StateListener = Callable[["StateChange"], None]
# Called after a mutation has been applied and written.
