# src/uptier/tasks/task_api.py

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from ..core.state import AppState
from .deadline_risk import at_risk_tasks as _at_risk_tasks
from .materializer import tasks_in_range as _tasks_in_range
from .reminder_scheduler import ReminderScheduler
from .task_models import Occurrence, RecurrenceRule, RiskAnnotation, Task, UpcomingReminder

logger = logging.getLogger(__name__)


def _scheduler(state: AppState) -> ReminderScheduler:
    if state.reminders is None:
        raise RuntimeError("Reminder scheduler is not wired into AppState")
    return state.reminders


def tasks_in_range(state: AppState, start: date, end: date) -> list[Task | Occurrence]:
    """Day / week view feed."""
    return _tasks_in_range(state.task_store, start, end)


def tasks_for_day(state: AppState, day: date) -> list[Task | Occurrence]:
    return _tasks_in_range(state.task_store, day, day)


def tasks_for_week(state: AppState, first_day: date) -> list[Task | Occurrence]:
    return _tasks_in_range(state.task_store, first_day, first_day + timedelta(days=6))


def at_risk_tasks(state: AppState, now: datetime | None = None) -> list[RiskAnnotation]:
    lookahead = int(getattr(state.settings, "risk_lookahead_days", 7))
    return _at_risk_tasks(state.task_store, now, lookahead_days=lookahead)


def get_upcoming(state: AppState, limit: int = 10) -> list[UpcomingReminder]:
    return _scheduler(state).get_upcoming(limit)


def get_pending_count(state: AppState) -> int:
    return _scheduler(state).get_pending_count()


def snooze(state: AppState, task_id: int) -> bool:
    return _scheduler(state).snooze(task_id)


def dismiss(state: AppState, task_id: int) -> bool:
    return _scheduler(state).dismiss(task_id)


def set_reminder_from_due_date(
    state: AppState,
    task_id: int,
    due_date: date | str,
    due_time: str | None = None,
) -> bool:
    return _scheduler(state).set_reminder_from_due_date(task_id, due_date, due_time)


def set_recurrence(
    state: AppState,
    task_id: int,
    rule: RecurrenceRule | None,
    end_date: date | None = None,
) -> bool:
    """
    Attach, replace or (rule=None) clear a task's recurrence.
    Same contract as the reminder actions: False on failure, never raises.
    """
    try:
        state.task_store.update_recurrence(task_id, rule, end_date)
    except Exception:
        logger.exception("update_recurrence failed task_id=%s", task_id)
        return False
    logger.info("Recurrence updated task_id=%s rule=%s end=%s", task_id, rule, end_date)
    return True
