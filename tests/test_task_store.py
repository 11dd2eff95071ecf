# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import date, datetime, time
from pathlib import Path

import pytest

from uptier.tasks.task_models import Frequency, RecurrenceRule
from uptier.tasks.task_store import TaskStore


def test_add_and_get_round_trips_fields(store: TaskStore) -> None:
    tid = store.add_task(
        title="  Write report  ",
        list_id="work",
        due_date=date(2026, 10, 20),
        due_time=time(14, 30),
        estimated_minutes=90,
        priority_tier=1,
        recurrence_rule=RecurrenceRule(Frequency.WEEKLY, 2),
        recurrence_end_date=date(2026, 12, 31),
        reminder_at=datetime(2026, 10, 20, 14, 15, 0, 999),
    )

    task = store.get_task(tid)
    assert task is not None
    assert task.title == "Write report"
    assert task.list_id == "work"
    assert task.due_date == date(2026, 10, 20)
    assert task.due_time == time(14, 30)
    assert task.estimated_minutes == 90
    assert task.priority_tier == 1
    assert RecurrenceRule.parse(task.recurrence_rule) == RecurrenceRule(Frequency.WEEKLY, 2)
    assert task.recurrence_end_date == date(2026, 12, 31)
    assert task.reminder_at == datetime(2026, 10, 20, 14, 15)
    assert task.completed is False
    assert task.created_at > 0


def test_get_missing_task_returns_none(store: TaskStore) -> None:
    assert store.get_task(123) is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": ""},
        {"title": "   "},
        {"title": "x", "priority_tier": 4},
        {"title": "x", "priority_tier": 0},
        {"title": "x", "estimated_minutes": 0},
    ],
)
def test_add_task_validation(store: TaskStore, kwargs) -> None:
    with pytest.raises(ValueError):
        store.add_task(**kwargs)
    assert store.count_tasks() == 0


def test_writes_to_missing_task_raise_key_error(store: TaskStore) -> None:
    with pytest.raises(KeyError):
        store.update_reminder_at(99, datetime(2026, 10, 20, 9, 0))
    with pytest.raises(KeyError):
        store.update_recurrence(99, RecurrenceRule(Frequency.DAILY))
    with pytest.raises(KeyError):
        store.complete_task(99)


def test_update_and_clear_reminder(store: TaskStore) -> None:
    tid = store.add_task(title="x")
    store.update_reminder_at(tid, datetime(2026, 10, 20, 9, 0))
    assert store.get_task(tid).reminder_at == datetime(2026, 10, 20, 9, 0)

    store.update_reminder_at(tid, None)
    assert store.get_task(tid).reminder_at is None


def test_update_recurrence_sets_and_clears(store: TaskStore) -> None:
    tid = store.add_task(title="x", due_date=date(2026, 10, 19))

    store.update_recurrence(tid, RecurrenceRule(Frequency.MONTHLY), date(2027, 6, 30))
    t = store.get_task(tid)
    assert t.is_recurring
    assert t.recurrence_end_date == date(2027, 6, 30)

    store.update_recurrence(tid, None, date(2027, 6, 30))
    t = store.get_task(tid)
    assert not t.is_recurring
    assert t.recurrence_end_date is None


def test_due_reminder_queries(store: TaskStore) -> None:
    now = datetime(2026, 10, 19, 8, 0)
    a = store.add_task(title="a", reminder_at=datetime(2026, 10, 19, 7, 0))
    b = store.add_task(title="b", reminder_at=now)
    store.add_task(title="c", reminder_at=datetime(2026, 10, 19, 8, 0, 1))
    d = store.add_task(title="d", reminder_at=datetime(2026, 10, 18, 7, 0))
    store.complete_task(d)

    assert [t.id for t in store.list_due_reminders(now)] == [a, b]
    assert store.count_due_reminders(now) == 2


def test_reminders_between_is_inclusive_and_limited(store: TaskStore) -> None:
    ids = [store.add_task(title=str(h), reminder_at=datetime(2026, 10, 19, h, 0)) for h in (8, 9, 10, 11)]
    got = store.list_reminders_between(datetime(2026, 10, 19, 8, 0), datetime(2026, 10, 19, 10, 0))
    assert [t.id for t in got] == ids[:3]

    got = store.list_reminders_between(datetime(2026, 10, 19, 8, 0), datetime(2026, 10, 19, 11, 0), limit=2)
    assert [t.id for t in got] == ids[:2]


def test_dated_tasks_exclude_recurring(store: TaskStore) -> None:
    plain = store.add_task(title="plain", due_date=date(2026, 10, 19))
    store.add_task(title="rec", due_date=date(2026, 10, 19), recurrence_rule=RecurrenceRule(Frequency.DAILY))
    store.add_task(title="undated")

    assert [t.id for t in store.list_dated_tasks(date(2026, 10, 19), date(2026, 10, 25))] == [plain]


def test_recurring_candidates_window(store: TaskStore) -> None:
    open_ended = store.add_task(title="a", due_date=date(2026, 1, 1), recurrence_rule=RecurrenceRule(Frequency.DAILY))
    ends_in = store.add_task(
        title="b",
        due_date=date(2026, 1, 1),
        recurrence_rule=RecurrenceRule(Frequency.DAILY),
        recurrence_end_date=date(2026, 10, 19),
    )
    store.add_task(
        title="ended",
        due_date=date(2026, 1, 1),
        recurrence_rule=RecurrenceRule(Frequency.DAILY),
        recurrence_end_date=date(2026, 10, 18),
    )
    store.add_task(title="later", due_date=date(2026, 10, 26), recurrence_rule=RecurrenceRule(Frequency.DAILY))

    got = store.list_recurring_candidates(date(2026, 10, 19), date(2026, 10, 25))
    assert [t.id for t in got] == [open_ended, ends_in]


def test_malformed_stored_values_read_as_none(store: TaskStore, settings) -> None:
    tid = store.add_task(title="x")
    conn = sqlite3.connect(str(settings.tasks_db_path))
    try:
        conn.execute(
            "UPDATE tasks SET due_date = 'soon', due_time = '25:99', reminder_at = 'later' WHERE id = ?",
            (tid,),
        )
        conn.commit()
    finally:
        conn.close()

    task = store.get_task(tid)
    assert task.due_date is None
    assert task.due_time is None
    assert task.reminder_at is None


def test_migrates_legacy_table(tmp_path: Path) -> None:
    db = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(str(db))
    try:
        conn.execute(
            "CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT NOT NULL, "
            "due_date TEXT, completed INTEGER NOT NULL DEFAULT 0, created_at REAL NOT NULL, updated_at REAL NOT NULL)"
        )
        conn.execute(
            "INSERT INTO tasks(title, due_date, completed, created_at, updated_at) VALUES ('old', '2026-10-19', 0, 1, 1)"
        )
        conn.commit()
    finally:
        conn.close()

    store = TaskStore(db)

    [task] = store.list_dated_tasks(date(2026, 10, 19), date(2026, 10, 19))
    assert task.title == "old"
    assert task.reminder_at is None
    assert task.recurrence_rule is None

    store.update_reminder_at(task.id, datetime(2026, 10, 19, 9, 0))
    assert store.count_due_reminders(datetime(2026, 10, 19, 9, 0)) == 1
