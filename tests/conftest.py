# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from uptier.config import NotificationSettings
from uptier.core.state import AppState
from uptier.tasks.reminder_scheduler import ReminderScheduler
from uptier.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeNotifier, FakeTray


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="UpTier",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "uptier.sqlite3",
        console_enabled=False,
        notifications_enabled=True,
        default_reminder_minutes=15,
        snooze_duration_minutes=10,
        sound_enabled=True,
        reminder_poll_interval_seconds=60.0,
        reminder_initial_delay_seconds=5.0,
        risk_lookahead_days=7,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def clock() -> FakeClock:
    # A Monday morning.
    return FakeClock(datetime(2026, 10, 19, 8, 0, 0))


@pytest.fixture()
def prefs() -> NotificationSettings:
    return NotificationSettings(
        enabled=True,
        default_reminder_minutes=15,
        snooze_duration_minutes=10,
        sound_enabled=True,
    )


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def tray() -> FakeTray:
    return FakeTray()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, prefs: NotificationSettings) -> AppState:
    """
    AppState wired with a real SQLite TaskStore (its queries are part of what
    we want to test) and fake UI collaborators.
    """
    return AppState(settings=settings, task_store=store, notifications=prefs)


@pytest.fixture()
def scheduler(
    state: AppState,
    notifier: FakeNotifier,
    tray: FakeTray,
    clock: FakeClock,
) -> ReminderScheduler:
    sched = ReminderScheduler(
        state.task_store,
        notifier,
        tray,
        lambda: state.notifications,
        clock=clock,
    )
    state.reminders = sched
    return sched
