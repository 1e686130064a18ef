# src/taskpilot/tasks/classifier.py

"""
Due-date buckets.

A task's bucket is a pure function of (due, is_completed, now, tz). Nothing is cached:
call `partition` again whenever the task list or the clock changes.

Rules, in order:
- no due date                                     -> NO_DUE
- due < now and not completed                     -> OVERDUE
- due on the same local calendar day as now       -> TODAY   (includes due == now and
                                                              completed tasks due earlier today)
- due < now (completed, earlier calendar day)     -> DONE
- otherwise (due after now, later calendar day)   -> UPCOMING
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from enum import StrEnum

from ..core.models import Task


class Bucket(StrEnum):
    OVERDUE = "overdue"
    TODAY = "today"
    UPCOMING = "upcoming"
    NO_DUE = "no_due"
    DONE = "done"


def _local_tz() -> tzinfo:
    tz = datetime.now().astimezone().tzinfo
    return tz if tz is not None else timezone.utc


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def classify(task: Task, now: datetime, tz: tzinfo | None = None) -> Bucket:
    if task.due is None:
        return Bucket.NO_DUE

    due = _aware(task.due)
    now = _aware(now)

    if due < now and not task.is_completed:
        return Bucket.OVERDUE

    zone = tz or _local_tz()
    if due.astimezone(zone).date() == now.astimezone(zone).date():
        return Bucket.TODAY

    if due < now:
        return Bucket.DONE
    return Bucket.UPCOMING


@dataclass(frozen=True, slots=True)
class TaskBuckets:
    overdue: tuple[Task, ...] = ()
    today: tuple[Task, ...] = ()
    upcoming: tuple[Task, ...] = ()
    no_due: tuple[Task, ...] = ()
    done: tuple[Task, ...] = ()

    def get(self, bucket: Bucket) -> tuple[Task, ...]:
        return getattr(self, bucket.value)

    def counts(self) -> dict[Bucket, int]:
        return {b: len(self.get(b)) for b in Bucket}

    @property
    def is_empty(self) -> bool:
        return not any(self.get(b) for b in Bucket)


def partition(tasks: Iterable[Task], now: datetime, tz: tzinfo | None = None) -> TaskBuckets:
    """Split tasks into disjoint buckets, keeping input order inside each bucket."""
    zone = tz or _local_tz()
    groups: dict[Bucket, list[Task]] = {b: [] for b in Bucket}
    for task in tasks:
        groups[classify(task, now, zone)].append(task)
    return TaskBuckets(**{b.value: tuple(groups[b]) for b in Bucket})


def matches_query(task: Task, query: str) -> bool:
    q = query.strip().lower()
    if not q:
        return True
    return (
        q in task.title.lower()
        or q in task.description.lower()
        or q in task.category_title.lower()
    )


def filter_tasks(tasks: Iterable[Task], query: str) -> list[Task]:
    """List-screen search: case-insensitive match on title, description and category."""
    return [t for t in tasks if matches_query(t, query)]
