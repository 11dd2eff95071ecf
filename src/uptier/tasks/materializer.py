# src/uptier/tasks/materializer.py

from __future__ import annotations

import logging
from datetime import date, time

from ..core.ports import TaskRepo
from .recurrence import expand
from .task_models import Occurrence, Task

logger = logging.getLogger(__name__)

UNSET_TIER_RANK = 99
_NO_TIME = time.max  # sorts "no time" after any real HH:MM


def _as_task(item: Task | Occurrence) -> Task:
    return item.task if isinstance(item, Occurrence) else item


def sort_key(item: Task | Occurrence) -> tuple[date, time, int]:
    t = _as_task(item)
    return (
        t.due_date or date.max,
        t.due_time if t.due_time is not None else _NO_TIME,
        t.priority_tier if t.priority_tier is not None else UNSET_TIER_RANK,
    )


def tasks_in_range(repo: TaskRepo, range_start: date, range_end: date) -> list[Task | Occurrence]:
    """
    Everything incomplete that is due in [range_start, range_end]: one-off
    tasks as stored, recurring tasks as one Occurrence per scheduled date.

    Ordered by due date, then due time (untimed last), then priority tier
    (unprioritized last).
    """
    if range_start > range_end:
        return []

    dated = repo.list_dated_tasks(range_start, range_end)
    recurring = repo.list_recurring_candidates(range_start, range_end)

    items: list[Task | Occurrence] = list(dated)
    for task in recurring:
        items.extend(expand(task, range_start, range_end))

    items.sort(key=sort_key)
    logger.debug(
        "Materialized range %s..%s dated=%d recurring=%d items=%d",
        range_start,
        range_end,
        len(dated),
        len(recurring),
        len(items),
    )
    return items
