# src/uptier/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..config import NotificationSettings
from ..tasks.task_store import TaskStore

if TYPE_CHECKING:
    from ..tasks.reminder_scheduler import ReminderScheduler


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any
    task_store: TaskStore

    # Runtime-mutable view of the notification preferences (/notify on|off).
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    # Wired by bootstrap once the UI side (notifier/tray) exists.
    reminders: ReminderScheduler | None = None
