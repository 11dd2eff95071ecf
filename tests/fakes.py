# tests/fakes.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta

from uptier.tasks.task_models import Task, UpcomingReminder


class FakeClock:
    """Deterministic wall clock for scheduler tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass(slots=True)
class ShownNotification:
    reminder: UpcomingReminder
    silent: bool
    on_click: Callable[[], None]


@dataclass(slots=True)
class FakeNotifier:
    """
    Fake Notifier used by scheduler tests.
    Set fail_for to make show() raise for specific task ids.
    """

    shown: list[ShownNotification] = field(default_factory=list)
    fail_for: set[int] = field(default_factory=set)

    def show(self, reminder: UpcomingReminder, *, silent: bool, on_click: Callable[[], None]) -> None:
        if reminder.task_id in self.fail_for:
            raise RuntimeError("notification backend unavailable")
        self.shown.append(ShownNotification(reminder=reminder, silent=silent, on_click=on_click))

    @property
    def shown_ids(self) -> list[int]:
        return [n.reminder.task_id for n in self.shown]


@dataclass(slots=True)
class FakeTray:
    counts: list[int] = field(default_factory=list)

    def update_pending_count(self, count: int) -> None:
        self.counts.append(count)


class FailingTray:
    def update_pending_count(self, count: int) -> None:
        raise RuntimeError("tray gone")


@dataclass(slots=True)
class FakeWindow:
    navigated: list[int] = field(default_factory=list)

    def navigate_to_task(self, task_id: int) -> None:
        self.navigated.append(task_id)


def make_task(
    task_id: int,
    *,
    title: str = "task",
    due_date: date | None = None,
    due_time=None,
    estimated_minutes: int | None = None,
    priority_tier: int | None = None,
    recurrence_rule: str | None = None,
    recurrence_end_date: date | None = None,
    reminder_at: datetime | None = None,
    completed: bool = False,
) -> Task:
    return Task(
        id=task_id,
        title=title,
        list_id="inbox",
        due_date=due_date,
        due_time=due_time,
        estimated_minutes=estimated_minutes,
        priority_tier=priority_tier,
        recurrence_rule=recurrence_rule,
        recurrence_end_date=recurrence_end_date,
        reminder_at=reminder_at,
        completed=completed,
    )


class FakeTaskRepo:
    """
    In-memory TaskRepo for the reminder scheduler.

    This avoids SQLite and makes tests purely about scheduling logic:
    time gating, dedup, snooze/dismiss transitions and failure handling.
    Set fail_reads / fail_writes to simulate a broken store.
    """

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = {t.id: t for t in tasks}
        self.fail_reads = False
        self.fail_writes = False

    def _check_read(self) -> None:
        if self.fail_reads:
            raise RuntimeError("database is locked")

    def list_due_reminders(self, now: datetime) -> list[Task]:
        self._check_read()
        out = [
            t for t in self.tasks.values() if not t.completed and t.reminder_at is not None and t.reminder_at <= now
        ]
        out.sort(key=lambda t: (t.reminder_at, t.id))
        return out

    def count_due_reminders(self, now: datetime) -> int:
        return len(self.list_due_reminders(now))

    def list_reminders_between(self, start: datetime, end: datetime, limit: int = 10) -> list[Task]:
        self._check_read()
        out = [
            t
            for t in self.tasks.values()
            if not t.completed and t.reminder_at is not None and start <= t.reminder_at <= end
        ]
        out.sort(key=lambda t: (t.reminder_at, t.id))
        return out[:limit]

    def update_reminder_at(self, task_id: int, reminder_at: datetime | None) -> None:
        if self.fail_writes:
            raise RuntimeError("disk I/O error")
        t = self.tasks[task_id]
        self.tasks[task_id] = replace(t, reminder_at=reminder_at)

    def get_task(self, task_id: int) -> Task | None:
        return self.tasks.get(task_id)

    def count_tasks(self) -> int:
        return len(self.tasks)

    # Unused by the scheduler; present to satisfy the TaskRepo port.
    def list_dated_tasks(self, start: date, end: date) -> list[Task]:
        return []

    def list_recurring_candidates(self, start: date, end: date) -> list[Task]:
        return []

    def list_risk_candidates(self, until: date) -> list[Task]:
        return []

    def update_recurrence(self, task_id: int, rule, end_date: date | None = None) -> None:
        return None
