# tests/test_task_store.py

from __future__ import annotations

import json

import pytest

from taskdeck.errors import ValidationError
from taskdeck.tasks.codec import STORAGE_KEY
from taskdeck.tasks.task_models import Priority, Recurrence, RecurrenceKind, SortMode, Theme
from taskdeck.tasks.task_store import ChangeKind, StateChange, TaskStore

from .fakes import DAY_MS, FakeClock, FakeKVStore, SequentialIds


def _stored(kv: FakeKVStore) -> dict:
    return json.loads(kv.data[STORAGE_KEY])


def test_add_task_requires_active_project(store: TaskStore, kv: FakeKVStore) -> None:
    with pytest.raises(ValidationError, match="project"):
        store.add_task("Buy milk")
    assert store.tasks == []
    assert kv.writes == []


@pytest.mark.parametrize("title", ["", "   ", "\t\n"])
def test_add_task_rejects_blank_title(store: TaskStore, kv: FakeKVStore, title: str) -> None:
    store.add_project("Home")
    writes = len(kv.writes)
    with pytest.raises(ValidationError):
        store.add_task(title)
    assert store.tasks == []
    assert len(kv.writes) == writes


def test_add_task_prepends_into_active_project(store: TaskStore, kv: FakeKVStore, clock: FakeClock) -> None:
    home = store.add_project("Home")
    first = store.add_task("  first  ", due_at=5 * DAY_MS, priority="HIGH", tags=["a", " ", "b "])
    clock.advance(10)
    second = store.add_task("second")

    assert [t.id for t in store.tasks] == [second.id, first.id]
    assert first.title == "first"
    assert first.project_id == home.id
    assert first.priority is Priority.HIGH
    assert first.tags == ["a", "b"]
    assert first.subtasks == []
    assert first.completed is False
    assert second.created_at == first.created_at + 10
    assert _stored(kv)["todos"][0]["id"] == second.id


def test_add_task_unknown_priority_is_none(store: TaskStore) -> None:
    store.add_project("Home")
    task = store.add_task("x", priority="urgent")
    assert task.priority is Priority.NONE


def test_add_task_increases_size_by_one_for_each_valid_call(store: TaskStore) -> None:
    store.add_project("P")
    for n, title in enumerate(["a", "b", "c"], start=1):
        task = store.add_task(title)
        assert len(store.tasks) == n
        assert task.project_id == store.effective_active_project_id()


def test_add_task_with_stale_active_project_is_rejected(kv: FakeKVStore) -> None:
    kv.data[STORAGE_KEY] = json.dumps(
        {"todos": [], "projects": [], "settings": {"activeProjectId": "gone"}}
    )
    store = TaskStore(kv)
    assert store.state.settings.active_project_id == "gone"
    assert store.effective_active_project_id() is None
    with pytest.raises(ValidationError):
        store.add_task("x")


def test_toggle_task_is_reversible_without_recurrence(store: TaskStore) -> None:
    store.add_project("P")
    task = store.add_task("a")
    store.toggle_task(task.id)
    assert task.completed is True
    store.toggle_task(task.id)
    assert task.completed is False
    assert len(store.tasks) == 1


def test_toggle_missing_task_does_not_write(store: TaskStore, kv: FakeKVStore) -> None:
    store.add_project("P")
    writes = len(kv.writes)
    assert store.toggle_task("nope") is None
    assert len(kv.writes) == writes


def test_toggle_recurring_task_spawns_next_only_on_completion(store: TaskStore, clock: FakeClock) -> None:
    store.add_project("P")
    task = store.add_task("water plants", due_at=10 * DAY_MS, tags=["home"])
    store.set_recurrence(task.id, Recurrence(kind=RecurrenceKind.WEEKLY, interval=2))

    store.toggle_task(task.id)
    assert len(store.tasks) == 2
    nxt = store.tasks[-1]
    assert nxt.id != task.id
    assert nxt.due_at == 24 * DAY_MS
    assert nxt.completed is False
    assert nxt.created_at == clock.now
    assert nxt.tags == ["home"]
    assert nxt.project_id == task.project_id
    assert nxt.recurrence == task.recurrence

    # Un-completing never spawns.
    store.toggle_task(task.id)
    assert task.completed is False
    assert len(store.tasks) == 2

    # Completing again does.
    store.toggle_task(task.id)
    assert len(store.tasks) == 3


def test_toggle_recurring_task_out_of_range_changes_nothing(store: TaskStore, kv: FakeKVStore) -> None:
    store.add_project("P")
    task = store.add_task("far future")
    store.set_recurrence(task.id, Recurrence(kind=RecurrenceKind.MONTHLY, interval=200_000))
    writes = len(kv.writes)
    seen: list[StateChange] = []
    store.subscribe(seen.append)

    with pytest.raises(ValidationError, match="out of range"):
        store.toggle_task(task.id)

    assert task.completed is False
    assert len(store.tasks) == 1
    assert len(kv.writes) == writes
    assert seen == []
    assert _stored(kv)["todos"][0]["completed"] is False


def test_edit_task_updates_fields(store: TaskStore) -> None:
    store.add_project("P")
    task = store.add_task("a", due_at=DAY_MS, tags=["x"])

    assert store.edit_task(task.id, title=" b ", priority="low", tags=["y", "z"]) is True
    assert task.title == "b"
    assert task.priority is Priority.LOW
    assert task.tags == ["y", "z"]
    assert task.due_at == DAY_MS  # untouched

    assert store.edit_task(task.id, due_at=None) is True
    assert task.due_at is None


def test_edit_task_ignores_blank_title_and_missing_id(store: TaskStore, kv: FakeKVStore) -> None:
    store.add_project("P")
    task = store.add_task("keep")
    writes = len(kv.writes)

    assert store.edit_task(task.id, title="   ", priority="high") is False
    assert task.title == "keep"
    assert task.priority is Priority.NONE
    assert store.edit_task("missing", title="x") is False
    assert len(kv.writes) == writes


def test_delete_task(store: TaskStore, kv: FakeKVStore) -> None:
    store.add_project("P")
    a = store.add_task("a")
    b = store.add_task("b")
    assert store.delete_task(a.id) is True
    assert [t.id for t in store.tasks] == [b.id]

    writes = len(kv.writes)
    assert store.delete_task(a.id) is False
    assert len(kv.writes) == writes


def test_clear_completed_only_writes_when_something_changed(store: TaskStore, kv: FakeKVStore) -> None:
    store.add_project("P")
    a = store.add_task("a")
    b = store.add_task("b")

    writes = len(kv.writes)
    assert store.clear_completed() == 0
    assert len(kv.writes) == writes

    store.toggle_task(a.id)
    assert store.clear_completed() == 1
    assert [t.id for t in store.tasks] == [b.id]
    assert len(kv.writes) == writes + 2


def test_add_project_rejects_blank_and_activates_new(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.add_project("  ")
    assert store.projects == []

    a = store.add_project(" Work ", color="#f00")
    assert a.name == "Work"
    assert a.color == "#f00"
    assert store.effective_active_project_id() == a.id

    b = store.add_project("Home")
    assert [p.id for p in store.projects] == [a.id, b.id]
    assert store.effective_active_project_id() == b.id


def test_delete_project_cascades(store: TaskStore, kv: FakeKVStore) -> None:
    work = store.add_project("Work")
    store.add_task("w1")
    store.add_task("w2")
    home = store.add_project("Home")
    store.add_task("h1")

    assert store.delete_project(work.id) is True
    assert all(t.project_id != work.id for t in store.tasks)
    assert len(store.tasks) == 3
    # Home stays active since it was not the deleted one.
    assert store.state.settings.active_project_id == home.id

    assert store.delete_project(home.id) is True
    assert store.state.settings.active_project_id is None
    saved = _stored(kv)
    assert saved["projects"] == []
    assert {t["projectId"] for t in saved["todos"]} == {None}

    assert store.delete_project("nope") is False


def test_set_active_project_is_lazy(store: TaskStore) -> None:
    a = store.add_project("A")
    store.set_active_project("ghost")
    assert store.state.settings.active_project_id == "ghost"
    assert store.effective_active_project_id() is None
    assert store.visible_tasks() == []

    store.set_active_project(a.id)
    assert store.active_project() is a


def test_set_sort_and_theme(store: TaskStore, kv: FakeKVStore) -> None:
    assert store.set_sort("due_asc") is SortMode.DUE_ASC
    assert store.set_theme("coffee") is Theme.COFFEE
    saved = _stored(kv)["settings"]
    assert saved["sort"] == "due_asc"
    assert saved["theme"] == "coffee"

    with pytest.raises(ValidationError):
        store.set_sort("random")
    with pytest.raises(ValidationError):
        store.set_theme("neon")
    assert store.state.settings.sort is SortMode.DUE_ASC
    assert store.state.settings.theme is Theme.COFFEE


def test_subtasks(store: TaskStore) -> None:
    store.add_project("P")
    task = store.add_task("trip")
    s1 = store.add_subtask(task.id, "pack")
    s2 = store.add_subtask(task.id, "tickets")
    assert s1 is not None and s2 is not None
    assert [s.title for s in task.subtasks] == ["pack", "tickets"]

    store.toggle_subtask(task.id, s1.id)
    assert s1.completed is True

    with pytest.raises(ValidationError):
        store.add_subtask(task.id, " ")

    assert store.delete_subtask(task.id, s2.id) is True
    assert [s.id for s in task.subtasks] == [s1.id]
    assert store.delete_subtask(task.id, s2.id) is False
    assert store.add_subtask("missing", "x") is None


def test_rename_project(store: TaskStore) -> None:
    p = store.add_project("Old")
    assert store.rename_project(p.id, "New") is True
    assert p.name == "New"
    with pytest.raises(ValidationError):
        store.rename_project(p.id, "")
    assert store.rename_project("missing", "x") is False


def test_state_survives_reload(kv: FakeKVStore, clock: FakeClock) -> None:
    store = TaskStore(kv, clock=clock, id_factory=SequentialIds("a"))
    store.add_project("P")
    task = store.add_task("persist me", tags=["t"])
    store.set_sort("priority_desc")

    again = TaskStore(kv, clock=clock, id_factory=SequentialIds("b"))
    assert again.state == store.state
    assert again.get_task(task.id) == task


def test_subscribers_are_notified_after_write(store: TaskStore, kv: FakeKVStore) -> None:
    seen: list[tuple[StateChange, int]] = []
    unsubscribe = store.subscribe(lambda change: seen.append((change, len(kv.writes))))

    p = store.add_project("P")
    assert seen[-1][0] == StateChange(kind=ChangeKind.PROJECT_ADDED, ids=(p.id,))
    assert seen[-1][1] == len(kv.writes)

    unsubscribe()
    store.add_task("quiet")
    assert len(seen) == 1


def test_failing_subscriber_does_not_abort_mutation(store: TaskStore) -> None:
    calls: list[StateChange] = []

    def boom(change: StateChange) -> None:
        raise RuntimeError("listener bug")

    store.subscribe(boom)
    store.subscribe(calls.append)
    store.add_project("P")
    assert len(store.projects) == 1
    assert len(calls) == 1
