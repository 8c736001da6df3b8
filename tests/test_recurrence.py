# tests/test_recurrence.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from taskdeck.errors import ValidationError
from taskdeck.tasks.recurrence import add_months, expand_next, next_due_at
from taskdeck.tasks.task_models import Priority, Recurrence, RecurrenceKind, Subtask, Task

from .fakes import DAY_MS, SequentialIds


def _ms(y: int, m: int, d: int, hh: int = 0) -> int:
    return int(datetime(y, m, d, hh, tzinfo=timezone.utc).timestamp() * 1000)


def test_weekly_interval_two() -> None:
    rule = Recurrence(kind=RecurrenceKind.WEEKLY, interval=2)
    assert next_due_at(rule, 10 * DAY_MS) == 24 * DAY_MS


def test_daily() -> None:
    rule = Recurrence(kind=RecurrenceKind.DAILY, interval=3)
    assert next_due_at(rule, _ms(2024, 2, 27, 9)) == _ms(2024, 3, 1, 9)


@pytest.mark.parametrize("interval", [0, -4])
def test_interval_clamped_to_one(interval: int) -> None:
    rule = Recurrence(kind=RecurrenceKind.DAILY, interval=interval)
    assert next_due_at(rule, 0) == DAY_MS


@pytest.mark.parametrize(
    ("start", "months", "expected"),
    [
        ((2023, 1, 15), 1, (2023, 2, 15)),
        ((2023, 11, 30), 3, (2024, 3, 1)),
        ((2023, 11, 29), 3, (2024, 2, 29)),
        ((2023, 1, 31), 1, (2023, 3, 3)),
        ((2024, 1, 31), 1, (2024, 3, 2)),
        ((2023, 12, 5), 1, (2024, 1, 5)),
        ((2023, 5, 31), 13, (2024, 7, 1)),
    ],
)
def test_add_months_rolls_over(start, months, expected) -> None:
    base = datetime(*start, 8, 30, tzinfo=timezone.utc)
    got = add_months(base, months)
    assert (got.year, got.month, got.day) == expected
    assert (got.hour, got.minute) == (8, 30)


def test_monthly_rule() -> None:
    rule = Recurrence(kind=RecurrenceKind.MONTHLY, interval=2)
    assert next_due_at(rule, _ms(2023, 3, 10)) == _ms(2023, 5, 10)


def test_expand_next_copies_and_resets() -> None:
    ids = SequentialIds("n")
    rule = Recurrence(kind=RecurrenceKind.DAILY, interval=1, count=5)
    task = Task(
        id="orig",
        title="standup",
        created_at=1,
        completed=True,
        due_at=None,
        priority=Priority.MEDIUM,
        tags=["team"],
        project_id="p",
        subtasks=[Subtask(id="s1", title="notes", completed=True)],
        recurrence=rule,
    )

    nxt = expand_next(task, now_ms=5 * DAY_MS, id_factory=ids)
    assert nxt is not None
    # No due date: base is "now".
    assert nxt.due_at == 6 * DAY_MS
    assert nxt.created_at == 5 * DAY_MS
    assert nxt.completed is False
    assert nxt.id not in ("orig", "s1")
    assert (nxt.title, nxt.priority, nxt.project_id, nxt.recurrence) == (
        "standup",
        Priority.MEDIUM,
        "p",
        rule,
    )
    assert nxt.tags == ["team"] and nxt.tags is not task.tags
    assert [(s.title, s.completed) for s in nxt.subtasks] == [("notes", False)]
    assert nxt.subtasks[0].id != "s1"
    # Source untouched.
    assert task.subtasks[0].completed is True
    assert task.due_at is None


def test_expand_next_without_rule() -> None:
    task = Task(id="x", title="once", created_at=0)
    assert expand_next(task, now_ms=0, id_factory=SequentialIds()) is None


@pytest.mark.parametrize(
    ("kind", "interval"),
    [
        (RecurrenceKind.MONTHLY, 200_000),
        (RecurrenceKind.DAILY, 10**9),
        (RecurrenceKind.WEEKLY, 10**12),
    ],
)
def test_next_due_beyond_calendar_range_is_rejected(kind: RecurrenceKind, interval: int) -> None:
    rule = Recurrence(kind=kind, interval=interval)
    with pytest.raises(ValidationError, match="out of range"):
        next_due_at(rule, _ms(2024, 1, 1))
