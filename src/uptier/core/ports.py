# src/uptier/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the scheduling core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and the UI/tray swappable and makes testing easier.
"""

from collections.abc import Callable
from datetime import date, datetime
from typing import Any, Protocol


class TaskRepo(Protocol):
    # Materializer
    def list_dated_tasks(self, start: date, end: date) -> list[Any]: ...
    def list_recurring_candidates(self, start: date, end: date) -> list[Any]: ...

    # Risk classifier
    def list_risk_candidates(self, until: date) -> list[Any]: ...

    # Reminder scheduler
    def list_due_reminders(self, now: datetime) -> list[Any]: ...
    def count_due_reminders(self, now: datetime) -> int: ...
    def list_reminders_between(self, start: datetime, end: datetime, limit: int = 10) -> list[Any]: ...
    def update_reminder_at(self, task_id: int, reminder_at: datetime | None) -> None: ...

    # Recurrence edits
    def update_recurrence(self, task_id: int, rule: Any | None, end_date: date | None = None) -> None: ...

    # Front end
    def get_task(self, task_id: int) -> Any | None: ...
    def add_task(self, *, title: str, **fields: Any) -> int: ...
    def complete_task(self, task_id: int) -> None: ...
    def count_tasks(self) -> int: ...


class Notifier(Protocol):
    """
    UI-side port: how the reminder scheduler surfaces a notification.

    on_click must be invoked by the notifier when the user activates the
    notification; the scheduler uses it to navigate to the task.
    """

    def show(self, reminder: Any, *, silent: bool, on_click: Callable[[], None]) -> None: ...


class TrayBadge(Protocol):
    """Tray-side port: pending reminder count for the badge / menu label."""

    def update_pending_count(self, count: int) -> None: ...


class NavigationTarget(Protocol):
    """Optional: the object passed to ReminderScheduler.start() (e.g. the main window)."""

    def navigate_to_task(self, task_id: int) -> None: ...
