# src/taskpilot/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from typing import Any

from ..cli.commands import registry as command_registry
from ..core.state import AppState

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
    except OSError:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Notifier that prints reminders into the console session."""

    async def notify(self, *, title: str, body: str, payload: dict[str, Any] | None = None) -> None:
        task_id = (payload or {}).get("taskId")
        suffix = f"  (id={task_id})" if task_id else ""
        _print_ts(f"[{title}] {body}{suffix}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (logged_in=%s).", state.session.is_authenticated)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    if not state.session.is_authenticated:
        _print_ts("Not logged in. Use /login <email> <password> or /signup.")

    prompt = f">>> {getattr(state.settings, 'app_name', 'taskpilot')}: "

    while True:
        try:
            # input() blocks; keep the event loop free for reminders and debounced searches.
            user_input = (await asyncio.to_thread(input, prompt)).strip()
            _rewrite_prev_line(f"[{_ts_local()}] {prompt}{user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        try:
            cmd_response = await command_registry.handle(state, user_input, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)

    logger.info("Console connector finished.")
