# src/taskdeck/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from ..core.state import AppState
from ..tasks.task_api import (
    AddProject,
    AddSubtask,
    AddTask,
    ClearCompleted,
    Command,
    DeleteProject,
    DeleteSubtask,
    DeleteTask,
    EditTask,
    Outcome,
    RenameProject,
    SelectProject,
    SetRecurrence,
    SetSort,
    SetTheme,
    ToggleSubtask,
    ToggleTask,
    dispatch,
)
from ..tasks.task_models import Project, Recurrence, RecurrenceKind, SortMode, Task, Theme
from ..tasks.task_store import UNSET
from .render import render_projects, render_task_list

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."
        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


class UsageError(Exception):
    """Bad command arguments; the message is shown to the user."""


def parse_due(raw: str) -> int | None:
    """'YYYY-MM-DD' -> epoch ms at UTC midnight; 'none'/'-' -> None."""
    if raw.lower() in ("none", "-", ""):
        return None
    try:
        dt = datetime.strptime(raw, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        raise UsageError(f"Invalid due date {raw!r}; expected YYYY-MM-DD.") from None
    return int(dt.timestamp() * 1000)


def parse_task_fields(args: list[str]) -> tuple[str, object, str | None, list[str] | None]:
    """
    Split free text into (title, due_at, priority, tags).

    Recognized tokens: due:YYYY-MM-DD, due:none, p:<priority>, #tag.
    due_at is UNSET and tags None when the tokens are absent.
    """
    words: list[str] = []
    due: object = UNSET
    priority: str | None = None
    tags: list[str] | None = None
    for tok in args:
        low = tok.lower()
        if low.startswith("due:"):
            due = parse_due(tok[4:])
        elif low.startswith("p:") or low.startswith("priority:"):
            priority = tok.split(":", 1)[1]
        elif tok.startswith("#") and len(tok) > 1:
            tags = (tags or []) + [tok[1:]]
        else:
            words.append(tok)
    return " ".join(words), due, priority, tags


def resolve_task(state: AppState, ref: str) -> Task:
    """A 1-based position in the last rendered list, or a (prefix of a) task id."""
    if ref.isdigit():
        view = state.last_view or state.refresh_view()
        idx = int(ref)
        if 1 <= idx <= len(view):
            return view[idx - 1]
        raise UsageError(f"No task #{ref} in the current list.")
    matches = [t for t in state.store.tasks if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise UsageError(f"No unique task matches {ref!r}.")


def resolve_project(state: AppState, ref: str) -> Project:
    projects = state.store.projects
    if ref.isdigit():
        idx = int(ref)
        if 1 <= idx <= len(projects):
            return projects[idx - 1]
        raise UsageError(f"No project #{ref}.")
    matches = [p for p in projects if p.id.startswith(ref) or p.name.lower() == ref.lower()]
    if len(matches) == 1:
        return matches[0]
    raise UsageError(f"No unique project matches {ref!r}.")


def _run(state: AppState, command: Command, success: str, missing: str = "Nothing to do.") -> str:
    outcome: Outcome = dispatch(state.store, command)
    if outcome.notice:
        return outcome.notice
    return success if outcome.ok else missing


def _guard(handler: CommandHandler) -> CommandHandler:
    def wrapped(state: AppState, args: list[str]) -> str:
        try:
            return handler(state, args)
        except UsageError as e:
            return str(e)

    wrapped.__name__ = handler.__name__
    wrapped.__doc__ = handler.__doc__
    return wrapped


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    project = store.active_project()
    settings = store.state.settings
    done = sum(1 for t in store.tasks if t.completed)
    return (
        "Status:\n"
        f"  Project: {project.name if project else '(none)'}\n"
        f"  Sort: {settings.sort.value}\n"
        f"  Theme: {settings.theme.value}\n"
        f"  Search: {state.query or '(none)'}\n"
        f"  Tasks: {len(store.tasks)} total, {done} completed"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.refresh_view()
    project = state.store.active_project()
    header = None
    if project is not None:
        header = f"== {project.name}" + (f" (search: {state.query})" if state.query else "")
    return render_task_list(tasks, has_active_project=project is not None, header=header)


def cmd_find(state: AppState, args: list[str]) -> str:
    """
    /find <text>  -> filter the list by title/tag substring
    /find         -> clear the filter
    """
    state.query = " ".join(args)
    return cmd_list(state, [])


def cmd_add(state: AppState, args: list[str]) -> str:
    title, due, priority, tags = parse_task_fields(args)
    return _run(
        state,
        AddTask(
            title=title,
            due_at=None if due is UNSET else due,  # type: ignore[arg-type]
            priority=priority,
            tags=tuple(tags or ()),
        ),
        success="Task added.",
    )


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        raise UsageError("Usage: /done <n>")
    task = resolve_task(state, args[0])
    return _run(state, ToggleTask(task.id), success="Task updated.", missing="Task not found.")


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <n> [new title] [due:YYYY-MM-DD|due:none] [p:<priority>] [#tag ...]
    Tags given here replace the existing ones.
    """
    if len(args) < 2:
        raise UsageError("Usage: /edit <n> [title] [due:YYYY-MM-DD] [p:<priority>] [#tag ...]")
    task = resolve_task(state, args[0])
    title, due, priority, tags = parse_task_fields(args[1:])
    return _run(
        state,
        EditTask(
            task_id=task.id,
            title=title or None,
            due_at=due,
            priority=priority,
            tags=tuple(tags) if tags is not None else None,
        ),
        success="Task updated.",
        missing="Nothing changed (task missing or empty title).",
    )


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        raise UsageError("Usage: /rm <n>")
    task = resolve_task(state, args[0])
    return _run(state, DeleteTask(task.id), success="Task deleted.", missing="Task not found.")


def cmd_clear(state: AppState, args: list[str]) -> str:
    outcome = dispatch(state.store, ClearCompleted())
    n = int(outcome.result or 0)
    return f"Removed {n} completed task(s)." if n else "No completed tasks."


def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        modes = ", ".join(m.value for m in SortMode)
        return f"Sort is {state.store.state.settings.sort.value}. Available: {modes}."
    return _run(state, SetSort(args[0].lower()), success=f"Sort set to {args[0].lower()}.")


def cmd_theme(state: AppState, args: list[str]) -> str:
    if not args:
        themes = ", ".join(t.value for t in Theme)
        return f"Theme is {state.store.state.settings.theme.value}. Available: {themes}."
    return _run(state, SetTheme(args[0].lower()), success=f"Theme set to {args[0].lower()}.")


def cmd_project(state: AppState, args: list[str]) -> str:
    """
    /project                     -> list projects
    /project add <name>          -> create and select
    /project use <n|name>        -> select
    /project rename <n> <name>   -> rename
    /project rm <n|name>         -> delete (tasks become unassigned)
    """
    store = state.store
    if not args:
        return render_projects(store.projects, store.effective_active_project_id())

    sub = args[0].lower()
    rest = args[1:]

    if sub == "add":
        return _run(state, AddProject(" ".join(rest)), success="Project created.")

    if not rest:
        raise UsageError(f"Usage: /project {sub} <n|name>")
    project = resolve_project(state, rest[0])

    if sub in ("use", "select"):
        return _run(state, SelectProject(project.id), success=f"Switched to {project.name}.")
    if sub == "rename":
        return _run(state, RenameProject(project.id, " ".join(rest[1:])), success="Project renamed.")
    if sub in ("rm", "delete"):
        return _run(
            state,
            DeleteProject(project.id),
            success=f"Deleted {project.name}. Its tasks remain unassigned.",
            missing="Project not found.",
        )
    raise UsageError("Usage: /project [add|use|rename|rm] ...")


def cmd_sub(state: AppState, args: list[str]) -> str:
    """
    /sub <n> add <title>   -> add a checklist item
    /sub <n> done <k>      -> toggle item k
    /sub <n> rm <k>        -> remove item k
    """
    if len(args) < 3:
        raise UsageError("Usage: /sub <n> add <title> | /sub <n> done <k> | /sub <n> rm <k>")
    task = resolve_task(state, args[0])
    action = args[1].lower()

    if action == "add":
        return _run(state, AddSubtask(task.id, " ".join(args[2:])), success="Subtask added.")

    ref = args[2]
    if not ref.isdigit() or not 1 <= int(ref) <= len(task.subtasks):
        raise UsageError(f"No subtask {ref} on this task.")
    subtask = task.subtasks[int(ref) - 1]
    if action == "done":
        return _run(state, ToggleSubtask(task.id, subtask.id), success="Subtask updated.")
    if action == "rm":
        return _run(state, DeleteSubtask(task.id, subtask.id), success="Subtask removed.")
    raise UsageError("Usage: /sub <n> add <title> | /sub <n> done <k> | /sub <n> rm <k>")


def cmd_repeat(state: AppState, args: list[str]) -> str:
    """
    /repeat <n> daily|weekly|monthly [interval] [count]
    /repeat <n> off
    """
    if len(args) < 2:
        raise UsageError("Usage: /repeat <n> daily|weekly|monthly [interval] [count] | /repeat <n> off")
    task = resolve_task(state, args[0])
    kind_raw = args[1].lower()
    if kind_raw == "off":
        return _run(state, SetRecurrence(task.id, None), success="Recurrence removed.")
    try:
        kind = RecurrenceKind(kind_raw)
    except ValueError:
        raise UsageError(f"Unknown repeat kind {kind_raw!r}.") from None
    numbers = args[2:4]
    if any(not n.isdigit() for n in numbers):
        raise UsageError("Interval and count must be positive integers.")
    interval = int(numbers[0]) if numbers else 1
    count = int(numbers[1]) if len(numbers) > 1 else None
    rule = Recurrence(kind=kind, interval=max(1, interval), count=count)
    return _run(state, SetRecurrence(task.id, rule), success=f"Task repeats {kind.value}.")


registry.register("help", _guard(cmd_help), help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", _guard(cmd_status), help_text="Show active project, sort, theme and counts.")
registry.register("list", _guard(cmd_list), help_text="Show tasks of the active project.", aliases=["ls"])
registry.register("find", _guard(cmd_find), help_text="Filter by title/tag text: /find <text> (empty clears).")
registry.register(
    "add",
    _guard(cmd_add),
    help_text="Add a task: /add <title> [due:YYYY-MM-DD] [p:low|medium|high] [#tag ...]",
)
registry.register("done", _guard(cmd_done), help_text="Toggle completion: /done <n>.", aliases=["toggle"])
registry.register("edit", _guard(cmd_edit), help_text="Edit a task: /edit <n> [title] [due:..] [p:..] [#tag ...]")
registry.register("rm", _guard(cmd_rm), help_text="Delete a task: /rm <n>.", aliases=["del"])
registry.register("clear", _guard(cmd_clear), help_text="Remove all completed tasks.")
registry.register("sort", _guard(cmd_sort), help_text="Set sort mode: /sort <mode>.")
registry.register("theme", _guard(cmd_theme), help_text="Set theme: /theme <name>.")
registry.register(
    "project",
    _guard(cmd_project),
    help_text="Projects: /project [add <name> | use <n> | rename <n> <name> | rm <n>].",
    aliases=["p"],
)
registry.register("sub", _guard(cmd_sub), help_text="Subtasks: /sub <n> add <title> | done <k> | rm <k>.")
registry.register("repeat", _guard(cmd_repeat), help_text="Recurrence: /repeat <n> daily|weekly|monthly [interval] | off.")
