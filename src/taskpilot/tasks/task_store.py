# src/taskpilot/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone, tzinfo

from ..core.errors import InvalidInput, TaskPilotError, friendly_error_message
from ..core.models import UNSET, NewTask, RecentTasks, RepeatType, Task, TaskEdit
from ..core.ports import ReminderScheduler, TaskGateway
from ..core.session import Session
from ..core.state import StateStore
from .classifier import TaskBuckets, partition
from .mutations import MutationOutcome, OptimisticMutationController

logger = logging.getLogger(__name__)

SERVER_BUCKETS = ("today", "overdue", "upcoming", "no_due")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_title(title: str) -> str:
    clean = (title or "").strip()
    if not clean:
        raise InvalidInput("Title cannot be empty.")
    return clean


def validate_due(due: datetime, *, now: datetime, min_lead_seconds: int) -> datetime:
    """A due time must be at least `min_lead_seconds` after now."""
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    if due - now < timedelta(seconds=min_lead_seconds):
        if min_lead_seconds >= 60:
            minutes = min_lead_seconds // 60
            unit = "minute" if minutes == 1 else "minutes"
            raise InvalidInput(f"Due time must be at least {minutes} {unit} from now.")
        raise InvalidInput(f"Due time must be at least {min_lead_seconds} seconds from now.")
    return due


@dataclass(frozen=True, slots=True)
class TaskListState:
    tasks: tuple[Task, ...] = ()
    recent: RecentTasks | None = None
    is_loading: bool = False
    error_message: str | None = None


class TaskListStore:
    """
    Task list screen state.

    - fetches go straight to the gateway and replace the snapshot
    - toggle/delete are optimistic (see mutations.py)
    - create/edit wait for the server and then install its answer
    Every failure is surfaced once through `error_message`; nothing is retried.
    """

    def __init__(
            self,
            gateway: TaskGateway,
            session: Session,
            *,
            reminders: ReminderScheduler | None = None,
            mutations: OptimisticMutationController | None = None,
            min_due_lead_seconds: int = 60,
            clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._reminders = reminders
        self._mutations = mutations or OptimisticMutationController()
        self._min_due_lead_seconds = min_due_lead_seconds
        self._clock = clock
        self.store: StateStore[TaskListState] = StateStore(TaskListState())

    @property
    def state(self) -> TaskListState:
        return self.store.snapshot

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self.store.snapshot.tasks

    @property
    def mutations(self) -> OptimisticMutationController:
        return self._mutations

    def get(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def buckets(self, now: datetime | None = None, tz: tzinfo | None = None) -> TaskBuckets:
        return partition(self.tasks, now or self._clock(), tz)

    # ---- local snapshot helpers ----

    def _set_tasks(self, tasks: tuple[Task, ...] | list[Task]) -> None:
        self.store.update(lambda s: replace(s, tasks=tuple(tasks)))

    def _replace_task(self, task: Task, *, append: bool = True) -> None:
        tasks = list(self.tasks)
        for i, t in enumerate(tasks):
            if t.id == task.id:
                tasks[i] = task
                break
        else:
            if not append:
                return
            tasks.append(task)
        self._set_tasks(tasks)

    def _fail(self, err: BaseException) -> None:
        msg = friendly_error_message(err)
        logger.info("Task action failed: %s", msg)
        self.store.update(lambda s: replace(s, is_loading=False, error_message=msg))

    def _begin(self) -> None:
        self.store.update(lambda s: replace(s, is_loading=True, error_message=None))

    def _end(self) -> None:
        self.store.update(lambda s: replace(s, is_loading=False))

    def clear_error(self) -> None:
        self.store.update(lambda s: replace(s, error_message=None))

    def insert(self, task: Task) -> None:
        """Add or replace a task that was created elsewhere (e.g. an accepted invite)."""
        self._replace_task(task)
        self._sync_reminder(task)

    def drop_category(self, category_id: str) -> None:
        """Forget tasks of a deleted category (the server cascades the delete)."""
        kept = [t for t in self.tasks if t.category_id != category_id]
        for t in self.tasks:
            if t.category_id == category_id and self._reminders is not None:
                self._reminders.cancel(t.id)
        self._set_tasks(kept)

    def _sync_reminder(self, task: Task) -> None:
        if self._reminders is None:
            return
        if task.is_completed or task.due is None:
            self._reminders.cancel(task.id)
        else:
            self._reminders.schedule(task.id, task.title, task.due)

    # ---- fetches ----

    async def fetch_tasks(self) -> bool:
        self._begin()
        try:
            token = self._session.require_token()
            tasks = await self._gateway.fetch_tasks(token)
        except TaskPilotError as e:
            self._fail(e)
            return False
        self.store.update(lambda s: replace(s, tasks=tuple(tasks), is_loading=False))
        logger.info("Fetched %d tasks", len(tasks))
        return True

    async def fetch_recent(self) -> bool:
        self._begin()
        try:
            token = self._session.require_token()
            recent = await self._gateway.fetch_recent(token)
        except TaskPilotError as e:
            self._fail(e)
            return False
        self.store.update(lambda s: replace(s, recent=recent, is_loading=False))
        return True

    async def fetch_bucket(self, bucket: str) -> list[Task] | None:
        """One server-side due listing (today / overdue / upcoming / no_due)."""
        self._begin()
        try:
            if bucket not in SERVER_BUCKETS:
                raise InvalidInput(f"Unknown due filter: {bucket}.")
            token = self._session.require_token()
            tasks = await self._gateway.fetch_bucket(token, bucket)
        except TaskPilotError as e:
            self._fail(e)
            return None
        self._end()
        return tasks

    async def fetch_for_category(self, category_id: str) -> list[Task] | None:
        self._begin()
        try:
            token = self._session.require_token()
            tasks = await self._gateway.fetch_for_category(token, category_id)
        except TaskPilotError as e:
            self._fail(e)
            return None
        self._end()
        return tasks

    # ---- create / edit ----

    async def add_task(
            self,
            *,
            title: str,
            category_id: str,
            due: datetime | None = None,
            repeat_type: RepeatType | None = None,
    ) -> Task | None:
        self._begin()
        try:
            clean_title = validate_title(title)
            if not (category_id or "").strip():
                raise InvalidInput("Pick a category for the task.")
            if due is not None:
                due = validate_due(due, now=self._clock(), min_lead_seconds=self._min_due_lead_seconds)
            token = self._session.require_token()
            created = await self._gateway.create_task(
                token,
                NewTask(title=clean_title, category_id=category_id, due=due, repeat_type=repeat_type),
            )
        except TaskPilotError as e:
            self._fail(e)
            return None

        self._replace_task(created)
        self._end()
        self._sync_reminder(created)
        logger.info("Created task id=%s", created.id)
        return created

    async def edit_task(self, task_id: str, edit: TaskEdit) -> Task | None:
        """
        Send an edit and install the server's answer.

        The task id stays busy until the server replies, so a toggle or delete on the
        same task cannot interleave with it (and vice versa).
        """
        self._begin()
        try:
            if edit.is_empty():
                raise InvalidInput("Nothing to update.")
            if edit.title is not UNSET:
                edit = replace(edit, title=validate_title(edit.title))
            if edit.due is not UNSET and edit.due is not None:
                edit = replace(
                    edit,
                    due=validate_due(edit.due, now=self._clock(), min_lead_seconds=self._min_due_lead_seconds),
                )
            token = self._session.require_token()
            with self._mutations.hold(task_id):
                updated = await self._gateway.edit_task(token, task_id, edit)
        except TaskPilotError as e:
            self._fail(e)
            return None

        # Only refresh a task we still list; an edit never resurrects a removed one.
        self._replace_task(updated, append=False)
        self._end()
        if self.get(updated.id) is not None:
            self._sync_reminder(updated)
        return updated

    # ---- optimistic mutations ----

    async def toggle_task(self, task_id: str) -> MutationOutcome[Task] | None:
        """Flip completion locally, then let the server's representation win."""
        try:
            token = self._session.require_token()
        except TaskPilotError as e:
            self._fail(e)
            return None

        def apply() -> Task | None:
            original = self.get(task_id)
            if original is not None:
                self._replace_task(original.with_completed(not original.is_completed))
            return original

        def rollback(original: Task | None) -> None:
            if original is not None:
                self._replace_task(original)

        def confirm(server_task: Task) -> None:
            self._replace_task(server_task)
            self._sync_reminder(server_task)

        return await self._run(
            task_id,
            apply=apply,
            remote=lambda: self._gateway.toggle_task(token, task_id),
            confirm=confirm,
            rollback=rollback,
        )

    async def delete_task(self, task_id: str) -> MutationOutcome[None] | None:
        """Remove locally; on failure reinsert at the original index."""
        try:
            token = self._session.require_token()
        except TaskPilotError as e:
            self._fail(e)
            return None

        def apply() -> tuple[int, Task] | None:
            tasks = list(self.tasks)
            for i, t in enumerate(tasks):
                if t.id == task_id:
                    del tasks[i]
                    self._set_tasks(tasks)
                    return i, t
            return None

        def rollback(removed: tuple[int, Task] | None) -> None:
            if removed is None:
                return
            index, task = removed
            tasks = [t for t in self.tasks if t.id != task.id]
            tasks.insert(min(index, len(tasks)), task)
            self._set_tasks(tasks)

        def confirm(_: None) -> None:
            if self._reminders is not None:
                self._reminders.cancel(task_id)

        return await self._run(
            task_id,
            apply=apply,
            remote=lambda: self._gateway.delete_task(token, task_id),
            confirm=confirm,
            rollback=rollback,
        )

    async def _run(self, key: str, **kwargs) -> MutationOutcome | None:
        self.clear_error()
        try:
            outcome = await self._mutations.run(key, **kwargs)
        except TaskPilotError as e:
            # BusyError: nothing was applied.
            self._fail(e)
            return None
        if outcome.error is not None:
            self._fail(outcome.error)
        return outcome
