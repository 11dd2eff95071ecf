# src/uptier/tasks/task_models.py

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from enum import StrEnum
from typing import Any


class RecurrenceRuleError(ValueError):
    """Raised when a stored recurrence rule cannot be parsed into {frequency, interval}."""


class Frequency(StrEnum):
    DAILY = "daily"
    WEEKDAYS = "weekdays"  # next business day; interval is ignored
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(slots=True, frozen=True)
class RecurrenceRule:
    frequency: Frequency
    interval: int = 1

    @classmethod
    def parse(cls, raw: str | dict[str, Any] | None) -> RecurrenceRule:
        """
        Parse the stored JSON form: {"frequency": "weekly", "interval": 2}.

        Raises RecurrenceRuleError for anything that is not exactly that shape
        (bad JSON, unknown frequency, interval missing / not an int / < 1).
        """
        if raw is None:
            raise RecurrenceRuleError("recurrence rule is empty")

        data: Any = raw
        if isinstance(raw, str):
            if not raw.strip():
                raise RecurrenceRuleError("recurrence rule is empty")
            try:
                data = json.loads(raw)
            except ValueError as e:
                raise RecurrenceRuleError(f"recurrence rule is not valid JSON: {raw!r}") from e

        if not isinstance(data, dict):
            raise RecurrenceRuleError(f"recurrence rule must be an object: {raw!r}")

        try:
            frequency = Frequency(str(data.get("frequency", "")).strip().lower())
        except ValueError as e:
            raise RecurrenceRuleError(f"unknown recurrence frequency: {data.get('frequency')!r}") from e

        interval = data.get("interval", 1)
        # bool is an int subclass; "interval": true is not a valid rule.
        if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
            raise RecurrenceRuleError(f"recurrence interval must be an integer >= 1: {interval!r}")

        return cls(frequency=frequency, interval=interval)

    def to_json(self) -> str:
        return json.dumps({"frequency": self.frequency.value, "interval": self.interval})


@dataclass(slots=True)
class Task:
    id: int
    title: str
    list_id: str | None

    due_date: date | None
    due_time: time | None
    estimated_minutes: int | None
    priority_tier: int | None  # 1..3, None = unprioritized

    recurrence_rule: str | None  # raw JSON as stored; see RecurrenceRule.parse
    recurrence_end_date: date | None
    reminder_at: datetime | None  # naive local wall-clock

    completed: bool = False
    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule and self.recurrence_rule.strip())

    @property
    def key(self) -> tuple[int, date | None]:
        return (self.id, self.due_date)


@dataclass(slots=True, frozen=True)
class Occurrence:
    """
    A recurring task projected onto one concrete date. Never persisted.

    `task` is a copy of the source task with due_date set to the occurrence
    date, so renderers can treat it like any other task. `task.id` is the
    series id (complete/edit apply to the whole series); `key` is what UI
    state should be keyed by.
    """

    task: Task
    occurrence_date: date | None  # None only for a degraded, undated task

    @classmethod
    def of(cls, task: Task, on: date) -> Occurrence:
        return cls(task=replace(task, due_date=on), occurrence_date=on)

    @property
    def task_id(self) -> int:
        return self.task.id

    @property
    def key(self) -> tuple[int, date | None]:
        return (self.task.id, self.occurrence_date)


class RiskLevel(StrEnum):
    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(slots=True, frozen=True)
class RiskAssessment:
    level: RiskLevel
    remaining_minutes: int
    reason: str


@dataclass(slots=True, frozen=True)
class RiskAnnotation:
    task_id: int
    title: str
    due_date: date
    due_time: time | None
    estimated_minutes: int
    remaining_minutes: int
    risk_level: RiskLevel
    reason: str


class ReminderState(StrEnum):
    """
    Per-task reminder lifecycle.

    inactive -> pending -> due_unshown -> shown
    shown --snooze--> pending (new reminder_at), shown --dismiss--> inactive.
    """

    INACTIVE = "inactive"
    PENDING = "pending"
    DUE_UNSHOWN = "due_unshown"
    SHOWN = "shown"


@dataclass(slots=True, frozen=True)
class UpcomingReminder:
    task_id: int
    title: str
    reminder_at: datetime
    list_id: str | None
