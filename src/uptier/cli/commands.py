# src/uptier/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import cast

from ..core.state import AppState
from ..tasks import task_api
from ..tasks.deadline_risk import format_duration
from ..tasks.task_models import Frequency, Occurrence, RecurrenceRule, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console front end (/help, /today, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument parsing ----


def parse_day(raw: str, today: date | None = None) -> date:
    """'today', 'tomorrow', 'yesterday' or YYYY-MM-DD."""
    today = today or date.today()
    word = raw.strip().lower()
    if word == "today":
        return today
    if word == "tomorrow":
        return today + timedelta(days=1)
    if word == "yesterday":
        return today - timedelta(days=1)
    return date.fromisoformat(word)


def parse_rule(raw: str) -> RecurrenceRule:
    """'weekly' or 'weekly:2' -> RecurrenceRule."""
    freq, _, interval = raw.partition(":")
    n = int(interval or 1)
    if n < 1:
        raise ValueError(f"interval must be >= 1, got {n}")
    return RecurrenceRule(frequency=Frequency(freq.strip().lower()), interval=n)


def _split_options(args: list[str]) -> tuple[str, dict[str, str]]:
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key and value:
            opts[key.lower()] = value
        else:
            words.append(a)
    return " ".join(words), opts


def _parse_task_id(args: list[str]) -> int | None:
    if not args:
        return None
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        return None


# ---- formatting ----


def format_item(item: Task | Occurrence) -> str:
    task = item.task if isinstance(item, Occurrence) else item
    when = task.due_date.isoformat() if task.due_date else "----------"
    at = task.due_time.strftime("%H:%M") if task.due_time else "     "
    tier = f"T{task.priority_tier}" if task.priority_tier else "  "
    flag = " (repeats)" if isinstance(item, Occurrence) and task.is_recurring else ""
    return f"#{task.id:<4} {when} {at} {tier} {task.title}{flag}"


def _format_list(header: str, items: list[Task | Occurrence]) -> str:
    if not items:
        return f"{header}: nothing due."
    return "\n".join([f"{header}:"] + [f"  {format_item(i)}" for i in items])


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    prefs = state.notifications
    running = bool(state.reminders and state.reminders.is_running)
    return (
        "Status:\n"
        f"  Tasks: {state.task_store.count_tasks()}\n"
        f"  Notifications: {'ON' if prefs.enabled else 'OFF'} (sound {'on' if prefs.sound_enabled else 'off'})\n"
        f"  Reminder lead: {prefs.default_reminder_minutes}m, snooze: {prefs.snooze_duration_minutes}m\n"
        f"  Scheduler: {'running' if running else 'stopped'}"
    )


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [due=YYYY-MM-DD|today|tomorrow] [at=HH:MM] [est=MIN] [tier=1..3]
                 [every=daily|weekdays|weekly|monthly[:N]] [until=YYYY-MM-DD] [remind=yes]
    """
    title, opts = _split_options(args)
    if not title:
        return "Usage: /add <title> [due=...] [at=HH:MM] [est=MIN] [tier=1..3] [every=weekly[:N]] [until=...] [remind=yes]"

    try:
        due = parse_day(opts["due"]) if "due" in opts else None
        at = time.fromisoformat(opts["at"]) if "at" in opts else None
        est = int(opts["est"]) if "est" in opts else None
        tier = int(opts["tier"]) if "tier" in opts else None
        rule = parse_rule(opts["every"]) if "every" in opts else None
        until = parse_day(opts["until"]) if "until" in opts else None
    except ValueError as e:
        return f"Invalid option: {e}"

    if rule is not None and due is None:
        return "A repeating task needs a start date: add due=YYYY-MM-DD."

    try:
        task_id = state.task_store.add_task(
            title=title,
            due_date=due,
            due_time=at,
            estimated_minutes=est,
            priority_tier=tier,
            recurrence_rule=rule,
            recurrence_end_date=until if rule is not None else None,
        )
    except ValueError as e:
        return f"Cannot add task: {e}"

    reply = f"Added #{task_id}: {title}"
    if opts.get("remind", "").lower() in ("1", "yes", "true", "on") and due is not None:
        ok = state.reminders is not None and state.reminders.set_reminder_from_due_date(task_id, due, at)
        reply += " (reminder set)" if ok else " (reminder not set: time already passed)"
    return reply


def cmd_done(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    if task_id is None:
        return "Usage: /done <task_id>"
    try:
        state.task_store.complete_task(task_id)
    except KeyError:
        return f"No task #{task_id}."
    return f"Completed #{task_id}."


def cmd_today(state: AppState, args: list[str]) -> str:
    day = date.today()
    return _format_list(f"Today ({day.isoformat()})", task_api.tasks_for_day(state, day))


def cmd_week(state: AppState, args: list[str]) -> str:
    try:
        first = parse_day(args[0]) if args else date.today()
    except ValueError:
        return "Usage: /week [YYYY-MM-DD]"
    last = first + timedelta(days=6)
    return _format_list(f"Week {first.isoformat()}..{last.isoformat()}", task_api.tasks_for_week(state, first))


def cmd_range(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /range <start> <end>"
    try:
        start, end = parse_day(args[0]), parse_day(args[1])
    except ValueError:
        return "Usage: /range <start> <end> (dates as YYYY-MM-DD, today or tomorrow)"
    return _format_list(f"{start.isoformat()}..{end.isoformat()}", task_api.tasks_in_range(state, start, end))


def cmd_risk(state: AppState, args: list[str]) -> str:
    risky = task_api.at_risk_tasks(state)
    if not risky:
        return "No tasks at risk."
    lines = ["At-risk tasks:"]
    for r in risky:
        lines.append(f"  [{r.risk_level.value.upper()}] #{r.task_id} {r.title}: {r.reason}")
    return "\n".join(lines)


def cmd_upcoming(state: AppState, args: list[str]) -> str:
    try:
        limit = int(args[0]) if args else 10
    except ValueError:
        return "Usage: /upcoming [limit]"
    items = task_api.get_upcoming(state, limit)
    if not items:
        return "No reminders in the next 24 hours."
    now = datetime.now()
    lines = ["Upcoming reminders:"]
    for r in items:
        mins = max(0, int((r.reminder_at - now).total_seconds() // 60))
        lines.append(f"  #{r.task_id} {r.title} at {r.reminder_at:%Y-%m-%d %H:%M} (in {format_duration(mins)})")
    return "\n".join(lines)


def cmd_pending(state: AppState, args: list[str]) -> str:
    n = task_api.get_pending_count(state)
    return f"{n} pending reminder{'s' if n != 1 else ''}."


def cmd_snooze(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    if task_id is None:
        return "Usage: /snooze <task_id>"
    if task_api.snooze(state, task_id):
        return f"Snoozed #{task_id} for {state.notifications.snooze_duration_minutes}m."
    return f"Could not snooze #{task_id}."


def cmd_dismiss(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    if task_id is None:
        return "Usage: /dismiss <task_id>"
    if task_api.dismiss(state, task_id):
        return f"Dismissed reminder for #{task_id}."
    return f"Could not dismiss #{task_id}."


def cmd_remind(state: AppState, args: list[str]) -> str:
    """/remind <task_id> <date> [HH:MM]"""
    task_id = _parse_task_id(args)
    if task_id is None or len(args) < 2:
        return "Usage: /remind <task_id> <YYYY-MM-DD|today|tomorrow> [HH:MM]"
    try:
        due = parse_day(args[1])
    except ValueError:
        return "Invalid date. Use YYYY-MM-DD, today or tomorrow."
    due_time = args[2] if len(args) > 2 else None

    if task_api.set_reminder_from_due_date(state, task_id, due, due_time):
        return f"Reminder set for #{task_id}."
    return f"Reminder not set for #{task_id} (time already passed or task missing)."


def cmd_repeat(state: AppState, args: list[str]) -> str:
    """/repeat <task_id> <daily|weekdays|weekly|monthly>[:N] [until=YYYY-MM-DD] | /repeat <task_id> off"""
    task_id = _parse_task_id(args)
    if task_id is None or len(args) < 2:
        return "Usage: /repeat <task_id> <daily|weekdays|weekly|monthly>[:N] [until=YYYY-MM-DD] | off"

    if args[1].lower() == "off":
        ok = task_api.set_recurrence(state, task_id, None)
        return f"#{task_id} no longer repeats." if ok else f"Could not update #{task_id}."

    _, opts = _split_options(args[2:])
    try:
        rule = parse_rule(args[1])
        until = parse_day(opts["until"]) if "until" in opts else None
    except ValueError as e:
        return f"Invalid rule: {e}"

    if task_api.set_recurrence(state, task_id, rule, until):
        return f"#{task_id} repeats {rule.frequency.value} (every {rule.interval})."
    return f"Could not update #{task_id}."


def cmd_notify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /notify          -> show status
    /notify on|off   -> enable/disable reminders
    /notify sound on|off
    """
    prefs = state.notifications
    if not args:
        return f"Notifications are {'ON' if prefs.enabled else 'OFF'}. Use /notify on or /notify off."

    if args[0].lower() == "sound" and len(args) > 1:
        prefs.sound_enabled = args[1].lower() in ("on", "1", "true", "yes")
        return f"Notification sound {'on' if prefs.sound_enabled else 'off'}."

    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        prefs.enabled = True
    elif arg in ("off", "0", "false", "no"):
        prefs.enabled = False
    else:
        return "Usage: /notify on | /notify off | /notify sound on|off"

    if emit:
        with contextlib.suppress(Exception):
            emit(f"[NOTIFY] Reminders {'enabled' if prefs.enabled else 'disabled'}; applies from the next check.")
    logger.debug("Notifications toggled enabled=%s", prefs.enabled)
    return f"Notifications {'ON' if prefs.enabled else 'OFF'}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task count and notification settings.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> [due=] [at=] [est=] [tier=] [every=] [until=] [remind=yes].")
registry.register("done", cmd_done, help_text="Complete a task (or a whole series): /done <id>.")
registry.register("today", cmd_today, help_text="Tasks due today, recurring ones included.")
registry.register("week", cmd_week, help_text="Tasks for 7 days: /week [start].")
registry.register("range", cmd_range, help_text="Tasks between two dates: /range <start> <end>.")
registry.register("risk", cmd_risk, help_text="Tasks at risk of missing their deadline.")
registry.register("upcoming", cmd_upcoming, help_text="Reminders in the next 24 hours: /upcoming [limit].")
registry.register("pending", cmd_pending, help_text="Number of reminders already due.")
registry.register("snooze", cmd_snooze, help_text="Snooze a reminder: /snooze <id>.")
registry.register("dismiss", cmd_dismiss, help_text="Dismiss a reminder: /dismiss <id>.")
registry.register("remind", cmd_remind, help_text="Remind before a due date: /remind <id> <date> [HH:MM].")
registry.register("repeat", cmd_repeat, help_text="Set recurrence: /repeat <id> weekly[:N] [until=] | off.")
registry.register("notify", cmd_notify, help_text="Enable/disable reminders: /notify on | /notify off.")
