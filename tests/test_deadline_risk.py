# tests/test_deadline_risk.py

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from uptier.tasks.deadline_risk import at_risk_tasks, classify, deadline_of, format_duration
from uptier.tasks.task_models import RiskLevel

DUE = date(2026, 10, 20)
DUE_AT = time(17, 0)
DEADLINE = datetime(2026, 10, 20, 17, 0)


@pytest.mark.parametrize(
    ("remaining", "level"),
    [
        (0, RiskLevel.CRITICAL),
        (29, RiskLevel.CRITICAL),
        (30, RiskLevel.WARNING),
        (45, RiskLevel.WARNING),
        (60, RiskLevel.WARNING),
        (61, RiskLevel.NONE),
    ],
)
def test_classify_boundaries(remaining: int, level: RiskLevel) -> None:
    now = DEADLINE - timedelta(minutes=remaining)
    result = classify(DUE, DUE_AT, 30, now)
    assert result.level == level
    assert result.remaining_minutes == remaining


def test_classify_floors_partial_minutes() -> None:
    now = DEADLINE - timedelta(minutes=29, seconds=59)
    assert classify(DUE, DUE_AT, 30, now).remaining_minutes == 29


def test_past_deadline_is_critical_with_zero_remaining() -> None:
    result = classify(DUE, DUE_AT, 30, DEADLINE + timedelta(hours=3))
    assert result.level == RiskLevel.CRITICAL
    assert result.remaining_minutes == 0
    assert result.reason == "Only 0m left but task needs ~30m"


def test_untimed_deadline_is_end_of_day() -> None:
    assert deadline_of(DUE, None) == datetime(2026, 10, 20, 23, 59)
    now = datetime(2026, 10, 20, 22, 0)
    result = classify(DUE, None, 90, now)
    assert result.remaining_minutes == 119
    assert result.level == RiskLevel.WARNING
    assert result.reason == "1h 59m left for a ~1h 30m task, tight buffer"


def test_critical_reason_wording() -> None:
    result = classify(DUE, DUE_AT, 120, DEADLINE - timedelta(minutes=45))
    assert result.reason == "Only 45m left but task needs ~2h"


def test_no_risk_has_empty_reason() -> None:
    result = classify(DUE, DUE_AT, 30, DEADLINE - timedelta(days=1))
    assert result.level == RiskLevel.NONE
    assert result.reason == ""


@pytest.mark.parametrize(
    ("minutes", "text"),
    [(0, "0m"), (45, "45m"), (60, "1h"), (90, "1h 30m"), (125, "2h 5m"), (1440, "24h")],
)
def test_format_duration(minutes: int, text: str) -> None:
    assert format_duration(minutes) == text


def test_at_risk_tasks_from_store(store) -> None:
    now = datetime(2026, 10, 19, 15, 0)

    crit = store.add_task(title="Report", due_date=date(2026, 10, 19), due_time=time(16, 0), estimated_minutes=90)
    warn = store.add_task(title="Slides", due_date=date(2026, 10, 19), estimated_minutes=300)
    # Comfortable, no estimate, no date, outside look-ahead, completed: all excluded.
    store.add_task(title="Easy", due_date=date(2026, 10, 21), estimated_minutes=30)
    store.add_task(title="No estimate", due_date=date(2026, 10, 19), due_time=time(15, 5))
    store.add_task(title="Someday", estimated_minutes=600)
    store.add_task(title="Far", due_date=date(2026, 11, 30), estimated_minutes=100000)
    done = store.add_task(title="Done", due_date=date(2026, 10, 19), estimated_minutes=600)
    store.complete_task(done)

    risky = at_risk_tasks(store, now)

    assert [(r.task_id, r.risk_level) for r in risky] == [(crit, RiskLevel.CRITICAL), (warn, RiskLevel.WARNING)]
    assert risky[0].remaining_minutes == 60
    assert risky[0].reason == "Only 1h left but task needs ~1h 30m"
    assert risky[1].due_time is None
    assert risky[1].remaining_minutes == 539


def test_overdue_tasks_are_reported(store) -> None:
    now = datetime(2026, 10, 19, 9, 0)
    late = store.add_task(title="Late", due_date=date(2026, 10, 15), estimated_minutes=30)

    risky = at_risk_tasks(store, now)
    assert [r.task_id for r in risky] == [late]
    assert risky[0].remaining_minutes == 0


def test_lookahead_window_is_configurable(store) -> None:
    now = datetime(2026, 10, 19, 9, 0)
    tid = store.add_task(title="Big", due_date=date(2026, 10, 22), estimated_minutes=5000)

    assert at_risk_tasks(store, now, lookahead_days=2) == []
    assert [r.task_id for r in at_risk_tasks(store, now, lookahead_days=3)] == [tid]
