# src/taskpilot/tasks/reminders.py

"""
Local reminders.

A small in-process stand-in for OS notification scheduling:
- stores register/cancel reminders through the ReminderScheduler port,
- run_reminder_loop polls for due reminders and hands them to a Notifier.

Delivery (OS banner, console line, ...) belongs to the Notifier, not the scheduler.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from ..core.ports import Notifier

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Task Reminder"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class Reminder:
    task_id: str
    title: str
    due: datetime


class LocalReminderScheduler:
    """One pending reminder per task id; rescheduling replaces the previous one."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._pending: dict[str, Reminder] = {}

    def schedule(self, task_id: str, title: str, due: datetime) -> bool:
        if due.tzinfo is None:
            due = due.replace(tzinfo=timezone.utc)
        if due <= self._clock():
            logger.debug("Skipping reminder for task=%s: due time is in the past", task_id)
            self._pending.pop(task_id, None)
            return False
        self._pending[task_id] = Reminder(task_id=task_id, title=title, due=due)
        logger.info("Reminder scheduled task=%s due=%s", task_id, due.isoformat())
        return True

    def cancel(self, task_id: str) -> None:
        if self._pending.pop(task_id, None) is not None:
            logger.info("Reminder cancelled task=%s", task_id)

    def pending(self) -> list[Reminder]:
        return sorted(self._pending.values(), key=lambda r: r.due)

    def pop_due(self, now: datetime | None = None) -> list[Reminder]:
        now = now or self._clock()
        due = [r for r in self.pending() if r.due <= now]
        for r in due:
            self._pending.pop(r.task_id, None)
        return due


async def run_reminder_loop(
        scheduler: LocalReminderScheduler,
        notifier: Notifier,
        *,
        interval_seconds: float = 15.0,
) -> None:
    """
    Simple polling loop.

    Every interval_seconds:
    - pop reminders whose due time has passed
    - deliver each via notifier.notify(...)
    A failed delivery is logged and dropped (reminders are best-effort, never retried).

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        for reminder in scheduler.pop_due():
            try:
                await notifier.notify(
                    title=REMINDER_TITLE,
                    body=reminder.title,
                    payload={"taskId": reminder.task_id},
                )
                logger.info("Reminder delivered task=%s", reminder.task_id)
            except Exception:
                logger.exception("Reminder delivery failed task=%s", reminder.task_id)

        await asyncio.sleep(sleep_s)
