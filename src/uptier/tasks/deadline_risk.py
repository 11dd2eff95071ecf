# src/uptier/tasks/deadline_risk.py

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta

from ..core.ports import TaskRepo
from .task_models import RiskAnnotation, RiskAssessment, RiskLevel

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59)
DEFAULT_LOOKAHEAD_DAYS = 7


def format_duration(minutes: int) -> str:
    if minutes >= 60:
        h, m = divmod(minutes, 60)
        return f"{h}h {m}m" if m > 0 else f"{h}h"
    return f"{minutes}m"


def deadline_of(due_date: date, due_time: time | None, default_time: time = END_OF_DAY) -> datetime:
    return datetime.combine(due_date, due_time if due_time is not None else default_time)


def classify(
    due_date: date,
    due_time: time | None,
    estimated_minutes: int,
    now: datetime,
) -> RiskAssessment:
    """
    Compare the time left before the deadline with the task's estimate.

    - remaining < estimate          -> critical
    - estimate <= remaining <= 2x   -> warning
    - remaining > 2x estimate       -> none
    """
    deadline = deadline_of(due_date, due_time)
    remaining = max(0, math.floor((deadline - now).total_seconds() / 60))

    if remaining > estimated_minutes * 2:
        return RiskAssessment(level=RiskLevel.NONE, remaining_minutes=remaining, reason="")

    if remaining < estimated_minutes:
        reason = (
            f"Only {format_duration(remaining)} left but task needs "
            f"~{format_duration(estimated_minutes)}"
        )
        return RiskAssessment(level=RiskLevel.CRITICAL, remaining_minutes=remaining, reason=reason)

    reason = (
        f"{format_duration(remaining)} left for a ~{format_duration(estimated_minutes)} task, "
        "tight buffer"
    )
    return RiskAssessment(level=RiskLevel.WARNING, remaining_minutes=remaining, reason=reason)


def at_risk_tasks(
    repo: TaskRepo,
    now: datetime | None = None,
    *,
    lookahead_days: int = DEFAULT_LOOKAHEAD_DAYS,
) -> list[RiskAnnotation]:
    """
    Incomplete tasks due within the look-ahead window whose estimate does not
    comfortably fit in the remaining time.
    """
    if now is None:
        now = datetime.now()

    logger.info("Checking for at-risk tasks")
    candidates = repo.list_risk_candidates(now.date() + timedelta(days=max(0, lookahead_days)))

    out: list[RiskAnnotation] = []
    for task in candidates:
        if task.due_date is None or not task.estimated_minutes:
            continue
        assessment = classify(task.due_date, task.due_time, task.estimated_minutes, now)
        if assessment.level == RiskLevel.NONE:
            continue
        out.append(
            RiskAnnotation(
                task_id=task.id,
                title=task.title,
                due_date=task.due_date,
                due_time=task.due_time,
                estimated_minutes=task.estimated_minutes,
                remaining_minutes=assessment.remaining_minutes,
                risk_level=assessment.level,
                reason=assessment.reason,
            )
        )

    logger.info("At-risk check complete total=%d at_risk=%d", len(candidates), len(out))
    return out
