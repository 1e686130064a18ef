# src/taskpilot/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs on one event loop:
- the local reminder loop as a background task,
- the console REPL (optional; otherwise waits until interrupted).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging
from ..tasks.reminders import run_reminder_loop

logger = logging.getLogger(__name__)


async def _shutdown(state, reminder_task: asyncio.Task | None) -> None:
    """Best-effort shutdown: stop the reminder loop, then close the HTTP client."""
    state.user_search.cancel()

    if reminder_task is not None:
        reminder_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reminder_task

    try:
        await state.transport.aclose()
    except Exception:
        logger.debug("HTTP client close failed.", exc_info=True)


async def _amain(settings) -> None:
    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    reminder_task = asyncio.create_task(
        run_reminder_loop(
            state.reminders,
            ConsoleNotifier(),
            interval_seconds=settings.reminder_poll_seconds,
        ),
        name="taskpilot-reminders",
    )

    try:
        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            await asyncio.Event().wait()
    finally:
        await _shutdown(state, reminder_task)


def main() -> None:
    settings = get_settings()

    setup_logging(log_dir=settings.data_dir, console_level=getattr(settings, "log_level", "INFO"))

    logger.info("Starting %s...", getattr(settings, "app_name", "taskpilot"))

    try:
        asyncio.run(_amain(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
