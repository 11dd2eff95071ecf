# src/uptier/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (task store, reminder scheduler).
"""

from __future__ import annotations

import logging

from ..config import NotificationSettings, get_settings
from ..core.ports import Notifier, TrayBadge
from ..core.state import AppState
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    return AppState(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path),
        notifications=NotificationSettings.from_settings(settings),
    )


def wire_reminders(state: AppState, notifier: Notifier, tray: TrayBadge) -> ReminderScheduler:
    """
    Build the reminder scheduler for this state. It reads state.notifications
    on every call, so runtime toggles apply without a restart.
    """
    scheduler = ReminderScheduler(
        state.task_store,
        notifier,
        tray,
        lambda: state.notifications,
        interval_seconds=float(getattr(state.settings, "reminder_poll_interval_seconds", 60.0)),
        initial_delay_seconds=float(getattr(state.settings, "reminder_initial_delay_seconds", 5.0)),
    )
    state.reminders = scheduler
    logger.debug("Reminder scheduler wired")
    return scheduler
