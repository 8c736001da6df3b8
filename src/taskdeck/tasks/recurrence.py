# src/taskdeck/tasks/recurrence.py

"""
Recurrence expansion.

When a recurring task is completed, the next occurrence is synthesized as a
brand-new task. Date math runs in UTC so results do not depend on the host
timezone.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Callable

from ..errors import ValidationError
from .task_models import Recurrence, RecurrenceKind, Subtask, Task


def _from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def _to_ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def add_months(dt: datetime, months: int) -> datetime:
    """
    Calendar month arithmetic with day-of-month overflow.

    Days past the end of the target month roll into the next month
    (Jan 31 + 1 month -> Mar 3, or Mar 2 in a leap year).
    """
    total = dt.month - 1 + months
    year = dt.year + total // 12
    month = total % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    if dt.day <= last_day:
        return dt.replace(year=year, month=month)
    return dt.replace(year=year, month=month, day=1) + timedelta(days=dt.day - 1)


def next_due_at(rule: Recurrence, base_ms: int) -> int:
    """Raises ValidationError when the result falls outside the datetime range."""
    n = rule.effective_interval
    try:
        base = _from_ms(base_ms)
        if rule.kind is RecurrenceKind.DAILY:
            nxt = base + timedelta(days=n)
        elif rule.kind is RecurrenceKind.WEEKLY:
            nxt = base + timedelta(days=7 * n)
        else:
            nxt = add_months(base, n)
    except (OverflowError, ValueError, OSError) as e:
        raise ValidationError("Next occurrence is out of range.") from e
    return _to_ms(nxt)


def expand_next(task: Task, *, now_ms: int, id_factory: Callable[[], str]) -> Task | None:
    """
    Build the next occurrence of `task`, or None if it does not recur.

    The source task is not modified.
    """
    rule = task.recurrence
    if rule is None:
        return None
    base_ms = task.due_at if task.due_at is not None else now_ms
    return Task(
        id=id_factory(),
        title=task.title,
        created_at=now_ms,
        completed=False,
        due_at=next_due_at(rule, base_ms),
        priority=task.priority,
        tags=list(task.tags),
        project_id=task.project_id,
        subtasks=[Subtask(id=id_factory(), title=s.title, completed=False) for s in task.subtasks],
        recurrence=rule,
    )
