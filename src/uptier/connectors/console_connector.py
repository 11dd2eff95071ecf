# src/uptier/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import format_item
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import UpcomingReminder

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleFrontend:
    """
    The console plays every UI role the reminder scheduler needs:
    notifier (prints the reminder), tray badge (prints count changes) and
    navigation target (prints the task a clicked reminder points to).
    """

    def __init__(self, state: AppState, app_name: str = "UpTier") -> None:
        self._state = state
        self._app_name = app_name
        self._pending = 0
        self._on_click: dict[int, Callable[[], None]] = {}

    @property
    def pending_count(self) -> int:
        return self._pending

    def show(self, reminder: UpcomingReminder, *, silent: bool, on_click: Callable[[], None]) -> None:
        bell = "" if silent else "\a"
        self._on_click[reminder.task_id] = on_click
        _print_ts(
            f"{bell}[{self._app_name} Reminder] #{reminder.task_id} {reminder.title} "
            f"(due {reminder.reminder_at:%H:%M}). /open {reminder.task_id}, "
            f"/snooze {reminder.task_id} or /dismiss {reminder.task_id}"
        )

    def click(self, task_id: int) -> bool:
        """Console stand-in for clicking a notification."""
        cb = self._on_click.pop(task_id, None)
        if cb is None:
            return False
        cb()
        return True

    def update_pending_count(self, count: int) -> None:
        if count == self._pending:
            return
        self._pending = count
        if count > 0:
            _print_ts(f"[TRAY] {count} pending reminder{'s' if count > 1 else ''}")

    def navigate_to_task(self, task_id: int) -> None:
        task = self._state.task_store.get_task(task_id)
        if task is None:
            _print_ts(f"[TASK] #{task_id} no longer exists.")
            return
        _print_ts(f"[TASK] {format_item(task)}")


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None]) -> threading.Thread:
    """
    Read stdin in a daemon thread (input() blocks) and hand lines to the loop.
    None marks EOF / Ctrl+C. A daemon thread never holds up interpreter exit.
    """

    def reader() -> None:
        while True:
            try:
                line = input(">>> ")
            except (EOFError, KeyboardInterrupt):
                line = None
            except Exception:
                logger.exception("stdin reader crashed")
                line = None
            try:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            except RuntimeError:
                # Loop already closed.
                return
            if line is None:
                return

    t = threading.Thread(target=reader, name="console-stdin", daemon=True)
    t.start()
    return t


async def run_console_loop(state: AppState, frontend: ConsoleFrontend | None = None) -> None:
    """
    Interactive REPL. stdin is read in a background thread; every command is
    handled back on the event loop, so commands never interleave with a
    reminder poll.
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations
        print(f"[{_ts_local()}] {text}", flush=True)

    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines)

    while True:
        raw = await lines.get()
        if raw is None:
            logger.info("Console EOF received, exiting.")
            print()
            break

        user_input = raw.strip()
        _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if frontend is not None and user_input.lower().startswith("/open"):
            parts = user_input.split()
            try:
                task_id = int(parts[1].lstrip("#"))
            except (IndexError, ValueError):
                _print_ts("Usage: /open <task_id>")
                continue
            if not frontend.click(task_id):
                frontend.navigate_to_task(task_id)
            continue

        try:
            cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is None:
            cmd_response = "Commands start with '/'. Use /help to list them."

        print(f"[{_ts_local()}] {cmd_response}\n", flush=True)

    logger.info("Console connector finished.")
