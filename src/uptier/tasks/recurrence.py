# src/uptier/tasks/recurrence.py

"""
Recurrence expansion.

Turns a recurring task (anchor = its own due_date) into the concrete
occurrences that fall inside a date window. Pure: no storage, no clock.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from .task_models import Frequency, Occurrence, RecurrenceRule, RecurrenceRuleError, Task

logger = logging.getLogger(__name__)

# Hard cap on loop advances per expansion, whatever the range or interval.
MAX_ADVANCES = 366


def next_date(current: date, rule: RecurrenceRule) -> date:
    """Advance one step along the rule's schedule."""
    if rule.frequency == Frequency.DAILY:
        return current + timedelta(days=rule.interval)
    if rule.frequency == Frequency.WEEKDAYS:
        return current + timedelta(days=1)
    if rule.frequency == Frequency.WEEKLY:
        return current + timedelta(weeks=rule.interval)
    # relativedelta clamps the day to the end of shorter months (Jan 31 -> Feb 28).
    return current + relativedelta(months=rule.interval)


def _on_schedule(d: date, rule: RecurrenceRule) -> bool:
    if rule.frequency == Frequency.WEEKDAYS:
        return d.weekday() < 5
    return True


def expand_dates(
    anchor: date,
    rule: RecurrenceRule,
    range_start: date,
    range_end: date,
    end_date: date | None = None,
) -> list[date]:
    """
    Dates of the series anchored at `anchor` that fall in
    [range_start, min(range_end, end_date)], ascending.
    """
    effective_end = min(range_end, end_date) if end_date is not None else range_end

    out: list[date] = []
    current = anchor
    advances = 0
    while current <= effective_end and advances < MAX_ADVANCES:
        if current >= range_start and _on_schedule(current, rule):
            out.append(current)
        try:
            current = next_date(current, rule)
        except (OverflowError, ValueError):
            # Next step lies past date.max; the series ends here.
            logger.debug("Recurrence step overflowed anchor=%s rule=%s current=%s", anchor, rule, current)
            break
        advances += 1

    if advances >= MAX_ADVANCES and current <= effective_end:
        logger.debug(
            "Recurrence expansion hit the advance cap anchor=%s rule=%s range=%s..%s",
            anchor,
            rule,
            range_start,
            effective_end,
        )
    return out


def expand(task: Task, range_start: date, range_end: date) -> list[Occurrence]:
    """
    Expand a recurring task into occurrences within [range_start, range_end].

    Fails soft: a task without a usable rule or anchor comes back as a single
    occurrence of itself, so a bad row still shows up in views.
    """
    if not task.is_recurring or task.due_date is None:
        return [Occurrence(task=task, occurrence_date=task.due_date)]

    try:
        rule = RecurrenceRule.parse(task.recurrence_rule)
    except RecurrenceRuleError:
        logger.warning("Malformed recurrence rule on task %s: %r", task.id, task.recurrence_rule)
        return [Occurrence(task=task, occurrence_date=task.due_date)]

    dates = expand_dates(task.due_date, rule, range_start, range_end, task.recurrence_end_date)
    return [Occurrence.of(task, d) for d in dates]
