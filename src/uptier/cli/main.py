# src/uptier/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs on a single asyncio loop:
- the reminder scheduler (poll timer),
- the console REPL (optional; without it the app just delivers reminders).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state, wire_reminders
from ..config import get_settings
from ..connectors.console_connector import ConsoleFrontend, run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        if state.reminders is not None:
            state.reminders.stop()
    except Exception:
        logger.exception("Failed to stop reminder scheduler.")

    # TaskStore uses short-lived sqlite connections per call; close() is a no-op hook.
    try:
        state.task_store.close()
    except Exception:
        logger.debug("TaskStore close failed.", exc_info=True)


async def _run(state: AppState, frontend: ConsoleFrontend) -> None:
    scheduler = wire_reminders(state, notifier=frontend, tray=frontend)
    scheduler.start(frontend)

    stop_main = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_main.set)

    try:
        if state.settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state, frontend))
            waiter = asyncio.create_task(stop_main.wait())
            await asyncio.wait({console, waiter}, return_when=asyncio.FIRST_COMPLETED)
            waiter.cancel()
        else:
            logger.info("Console disabled. Delivering reminders only. Press Ctrl+C to stop.")
            await stop_main.wait()
    finally:
        _shutdown(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    frontend = ConsoleFrontend(state, app_name=settings.app_name)

    try:
        asyncio.run(_run(state, frontend))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
