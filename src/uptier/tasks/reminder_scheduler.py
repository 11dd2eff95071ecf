# src/uptier/tasks/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

A small polling loop that:
- fetches incomplete tasks whose reminder_at has passed,
- reports how many are pending to the tray badge,
- shows a notification for each one not shown yet in this process,
- remembers what it has shown so the next poll does not repeat it.

Snooze / dismiss mutate reminder_at through storage and drop the task from the
shown set, so the next poll observes the new state. Rendering the notification
and routing clicks belong to the UI side (Notifier port), not the scheduler.

Everything runs on one event loop: a poll cycle is a synchronous call between
two awaits, so cycles never overlap each other or a snooze/dismiss.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from functools import partial
from typing import Any

from ..config import NotificationSettings
from ..core.ports import Notifier, TaskRepo, TrayBadge
from .task_models import ReminderState, Task, UpcomingReminder

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_TIME = time(9, 0)
UPCOMING_WINDOW = timedelta(hours=24)


def _parse_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip()[:10])


def _parse_time(value: time | str | None) -> time | None:
    if value is None or isinstance(value, time):
        return value
    value = value.strip()
    return time.fromisoformat(value) if value else None


class ReminderScheduler:
    """
    Owns the poll timer and the in-memory "already shown" set.

    One instance per app; construct it with its collaborators and drive it
    with start()/stop(). Nothing else should touch its state directly.
    """

    def __init__(
        self,
        task_repo: TaskRepo,
        notifier: Notifier,
        tray: TrayBadge,
        settings_provider: Callable[[], NotificationSettings],
        *,
        interval_seconds: float = 60.0,
        initial_delay_seconds: float = 5.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = task_repo
        self._notifier = notifier
        self._tray = tray
        self._settings_provider = settings_provider
        self._interval_s = max(0.01, float(interval_seconds))
        self._initial_delay_s = max(0.0, float(initial_delay_seconds))
        self._clock = clock

        self._shown: set[int] = set()
        self._runner: asyncio.Task[None] | None = None
        self._context: Any = None
        self._running = False

    # ---- lifecycle ----

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def shown_task_ids(self) -> frozenset[int]:
        return frozenset(self._shown)

    def start(self, context: Any = None) -> None:
        """
        Start polling on the current event loop.

        `context` is whatever should receive navigate_to_task(task_id) when a
        notification is clicked (the main window, the console, ...).
        Raises RuntimeError when called outside a running event loop.
        """
        if self._running:
            logger.warning("Reminder scheduler already running")
            return

        loop = asyncio.get_running_loop()
        self._context = context
        self._running = True
        self._runner = loop.create_task(self._run(), name="reminder-scheduler")
        logger.info(
            "Reminder scheduler started interval=%.1fs initial_delay=%.1fs",
            self._interval_s,
            self._initial_delay_s,
        )

    def stop(self) -> None:
        if self._runner is not None:
            self._runner.cancel()
            self._runner = None
        self._running = False
        self._context = None
        logger.info("Reminder scheduler stopped")

    async def _run(self) -> None:
        # First check shortly after startup instead of a full interval later.
        await asyncio.sleep(self._initial_delay_s)
        while True:
            self._tick()
            await asyncio.sleep(self._interval_s)

    def _tick(self) -> None:
        if not self._running:
            return
        try:
            self.check_reminders()
        except Exception:
            logger.exception("Reminder poll cycle crashed")

    # ---- poll cycle ----

    def check_reminders(self) -> int:
        """
        One poll cycle. Returns how many notifications were shown.

        The pending count reported to the tray covers every due reminder,
        shown or not; delivery is once per reminder per process lifetime
        unless snoozed/dismissed in between.
        """
        prefs = self._settings_provider()
        if not prefs.enabled:
            self._report_pending(0)
            return 0

        now = self._clock()
        try:
            due = self._repo.list_due_reminders(now)
        except Exception:
            logger.exception("Error checking reminders")
            return 0

        self._report_pending(len(due))

        # Completed, deleted or rescheduled tasks leave the due list; forget them.
        self._shown.intersection_update(t.id for t in due)

        shown = 0
        for task in due:
            if task.id in self._shown:
                continue
            if self._show_notification(task, silent=not prefs.sound_enabled):
                shown += 1
        return shown

    def _report_pending(self, count: int) -> None:
        try:
            self._tray.update_pending_count(count)
        except Exception:
            logger.exception("update_pending_count failed count=%s", count)

    def _show_notification(self, task: Task, *, silent: bool) -> bool:
        if task.reminder_at is None:
            return False

        reminder = UpcomingReminder(
            task_id=task.id,
            title=task.title,
            reminder_at=task.reminder_at,
            list_id=task.list_id,
        )
        try:
            self._notifier.show(reminder, silent=silent, on_click=partial(self._on_click, task.id))
        except Exception:
            # Not marked as shown: the next cycle retries it.
            logger.exception("Showing notification failed task_id=%s", task.id)
            return False

        self._shown.add(task.id)
        logger.info("Showed notification task_id=%s title=%r", task.id, task.title)
        return True

    def _on_click(self, task_id: int) -> None:
        target = self._context
        navigate = getattr(target, "navigate_to_task", None)
        if navigate is None:
            logger.debug("Notification clicked with no navigation target task_id=%s", task_id)
            return
        try:
            navigate(task_id)
        except Exception:
            logger.exception("navigate_to_task failed task_id=%s", task_id)

    # ---- user actions ----

    def snooze(self, task_id: int) -> bool:
        """Push the reminder snooze_duration_minutes into the future and allow it to fire again."""
        try:
            minutes = int(self._settings_provider().snooze_duration_minutes)
            new_reminder_at = (self._clock() + timedelta(minutes=minutes)).replace(microsecond=0)
            self._repo.update_reminder_at(task_id, new_reminder_at)
        except Exception:
            logger.exception("Error snoozing notification task_id=%s", task_id)
            return False

        self._shown.discard(task_id)
        logger.info(
            "Snoozed notification task_id=%s reminder_at=%s minutes=%s",
            task_id,
            new_reminder_at.isoformat(),
            minutes,
        )
        return True

    def dismiss(self, task_id: int) -> bool:
        """Clear the reminder. It stays inactive until someone sets a new one."""
        try:
            self._repo.update_reminder_at(task_id, None)
        except Exception:
            logger.exception("Error dismissing notification task_id=%s", task_id)
            return False

        self._shown.discard(task_id)
        logger.info("Dismissed notification task_id=%s", task_id)
        return True

    def set_reminder_from_due_date(
        self,
        task_id: int,
        due_date: date | str,
        due_time: time | str | None = None,
    ) -> bool:
        """
        reminder_at = (due_date at due_time, default 09:00) - default_reminder_minutes.

        Rejected (False, nothing written) when that moment is already past.
        """
        try:
            deadline = datetime.combine(_parse_date(due_date), _parse_time(due_time) or DEFAULT_REMINDER_TIME)
            lead = int(self._settings_provider().default_reminder_minutes)
            reminder_at = deadline - timedelta(minutes=lead)

            if reminder_at < self._clock():
                logger.info("Not setting reminder in the past task_id=%s reminder_at=%s", task_id, reminder_at)
                return False

            self._repo.update_reminder_at(task_id, reminder_at)
        except Exception:
            logger.exception("Error setting reminder task_id=%s", task_id)
            return False

        self._shown.discard(task_id)
        logger.info("Set reminder from due date task_id=%s reminder_at=%s", task_id, reminder_at.isoformat())
        return True

    # ---- queries ----

    def get_upcoming(self, limit: int = 10) -> list[UpcomingReminder]:
        """Reminders firing within the next 24 hours, soonest first."""
        now = self._clock()
        try:
            tasks = self._repo.list_reminders_between(now, now + UPCOMING_WINDOW, limit)
        except Exception:
            logger.exception("Error getting upcoming notifications")
            return []

        return [
            UpcomingReminder(task_id=t.id, title=t.title, reminder_at=t.reminder_at, list_id=t.list_id)
            for t in tasks
            if t.reminder_at is not None
        ]

    def get_pending_count(self) -> int:
        try:
            return int(self._repo.count_due_reminders(self._clock()))
        except Exception:
            logger.exception("Error getting pending count")
            return 0

    def state_of(self, task: Task, now: datetime | None = None) -> ReminderState:
        if task.reminder_at is None or task.completed:
            return ReminderState.INACTIVE
        if now is None:
            now = self._clock()
        if task.reminder_at > now:
            return ReminderState.PENDING
        if task.id in self._shown:
            return ReminderState.SHOWN
        return ReminderState.DUE_UNSHOWN

    def clear_cache(self) -> None:
        """Forget which reminders were shown (manual refresh)."""
        self._shown.clear()
