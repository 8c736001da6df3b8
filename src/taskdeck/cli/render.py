# src/taskdeck/cli/render.py

"""
Plain-text rendering.

Pure functions of their arguments: nothing here dispatches commands or
touches the store, so rendering can never re-enter a mutation.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from ..tasks.task_models import Priority, Project, Task

NO_PROJECT_TEXT = "Create a project to add tasks."
EMPTY_PROJECT_TEXT = "No tasks in this project. Add one above!"
NO_PROJECTS_TEXT = "No projects yet. Use /project add <name>."


def format_date(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def format_meta(task: Task) -> str:
    parts: list[str] = []
    if task.due_at is not None:
        parts.append("Due " + format_date(task.due_at))
    if task.priority is not Priority.NONE:
        parts.append("Priority " + task.priority.value)
    if task.tags:
        parts.append("#" + " #".join(task.tags))
    if task.recurrence is not None:
        r = task.recurrence
        parts.append(f"Repeats {r.kind.value} x{r.effective_interval}")
    return " • ".join(parts)


def render_task(index: int, task: Task) -> str:
    box = "[x]" if task.completed else "[ ]"
    lines = [f"{index:>3}. {box} {task.title}"]
    meta = format_meta(task)
    if meta:
        lines.append(f"       {meta}")
    for k, sub in enumerate(task.subtasks, start=1):
        sbox = "[x]" if sub.completed else "[ ]"
        lines.append(f"       {k}) {sbox} {sub.title}")
    return "\n".join(lines)


def render_task_list(tasks: Sequence[Task], *, has_active_project: bool, header: str | None = None) -> str:
    if not has_active_project:
        return NO_PROJECT_TEXT
    if tasks:
        body = "\n".join(render_task(i, t) for i, t in enumerate(tasks, start=1))
    else:
        body = EMPTY_PROJECT_TEXT
    return f"{header}\n{body}" if header else body


def render_projects(projects: Sequence[Project], active_id: str | None) -> str:
    if not projects:
        return NO_PROJECTS_TEXT
    lines = ["Projects:"]
    for i, p in enumerate(projects, start=1):
        marker = "*" if p.id == active_id else " "
        color = f" ({p.color})" if p.color else ""
        lines.append(f" {marker}{i:>2}. {p.name}{color}")
    return "\n".join(lines)
