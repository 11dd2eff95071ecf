"""
Task subsystem.

Components:
- task_models.py: data structures (Task, RecurrenceRule, Occurrence, risk + reminder types)
- task_store.py: SQLite-backed storage + the query/update predicates the core needs
- recurrence.py: expands recurrence rules into dated occurrences
- materializer.py: merges one-off tasks and occurrences for a date range
- deadline_risk.py: flags tasks whose estimate does not fit before the deadline
- reminder_scheduler.py: polling scheduler that shows, snoozes and dismisses reminders
- task_api.py: small high-level helpers used by the rest of the app
"""
