# src/taskpilot/collab/collab_store.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from ..core.errors import BusyError, InvalidInput, TaskPilotError, friendly_error_message
from ..core.models import NewTask, RepeatType, ShareInvite, Task
from ..core.ports import CollabGateway
from ..core.session import Session
from ..core.state import StateStore
from ..tasks.mutations import MutationOutcome, OptimisticMutationController
from ..tasks.task_store import TaskListStore, validate_due

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CollabState:
    invites: tuple[ShareInvite, ...] = ()
    is_loading: bool = False
    error_message: str | None = None


class CollabStore:
    """
    Sharing: pending invites (requests) and outgoing shares.

    Accept and reject are optimistic: the invite leaves the pending list immediately and
    comes back at its original position if the server call fails (both for accept and reject).
    """

    def __init__(
            self,
            gateway: CollabGateway,
            session: Session,
            *,
            task_store: TaskListStore | None = None,
            mutations: OptimisticMutationController | None = None,
            min_due_lead_seconds: int = 60,
            clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._task_store = task_store
        self._mutations = mutations or OptimisticMutationController()
        self._min_due_lead_seconds = min_due_lead_seconds
        self._clock = clock
        self.store: StateStore[CollabState] = StateStore(CollabState())

    @property
    def state(self) -> CollabState:
        return self.store.snapshot

    @property
    def invites(self) -> tuple[ShareInvite, ...]:
        return self.store.snapshot.invites

    def get(self, invite_id: str) -> ShareInvite | None:
        return next((i for i in self.invites if i.id == invite_id), None)

    def _set(self, invites: list[ShareInvite] | tuple[ShareInvite, ...]) -> None:
        self.store.update(lambda s: replace(s, invites=tuple(invites)))

    def _fail(self, err: BaseException) -> None:
        msg = friendly_error_message(err)
        logger.info("Sharing action failed: %s", msg)
        self.store.update(lambda s: replace(s, is_loading=False, error_message=msg))

    def _begin(self) -> None:
        self.store.update(lambda s: replace(s, is_loading=True, error_message=None))

    async def fetch_invites(self) -> bool:
        self._begin()
        try:
            token = self._session.require_token()
            invites = await self._gateway.fetch_invites(token)
        except TaskPilotError as e:
            self._fail(e)
            return False
        self.store.update(lambda s: replace(s, invites=tuple(invites), is_loading=False))
        return True

    async def share_task(self, task_id: str, shared_with_user_id: str) -> bool:
        self._begin()
        try:
            token = self._session.require_token()
            await self._gateway.share_task(token, task_id=task_id, shared_with_user_id=shared_with_user_id)
        except TaskPilotError as e:
            self._fail(e)
            return False
        self.store.update(lambda s: replace(s, is_loading=False))
        logger.info("Shared task id=%s with user=%s", task_id, shared_with_user_id)
        return True

    # ---- optimistic accept / reject ----

    def _remove(self, invite_id: str) -> tuple[int, ShareInvite] | None:
        invites = list(self.invites)
        for i, inv in enumerate(invites):
            if inv.id == invite_id:
                del invites[i]
                self._set(invites)
                return i, inv
        return None

    def _restore(self, removed: tuple[int, ShareInvite] | None) -> None:
        if removed is None:
            return
        index, invite = removed
        invites = [i for i in self.invites if i.id != invite.id]
        invites.insert(min(index, len(invites)), invite)
        self._set(invites)

    async def accept_invite(
            self,
            invite_id: str,
            *,
            category_id: str,
            due: datetime | None = None,
            repeat_type: RepeatType | None = None,
    ) -> MutationOutcome[Task] | None:
        """Accept an invite; the server creates the task, which joins the local task list."""
        self.store.update(lambda s: replace(s, error_message=None))
        try:
            if self._mutations.is_busy(f"invite:{invite_id}"):
                raise BusyError(invite_id)
            invite = self.get(invite_id)
            if invite is None:
                raise InvalidInput("This request is no longer pending.")
            if not (category_id or "").strip():
                raise InvalidInput("Pick a category for the task.")
            if due is not None:
                due = validate_due(due, now=self._clock(), min_lead_seconds=self._min_due_lead_seconds)
            token = self._session.require_token()
        except TaskPilotError as e:
            self._fail(e)
            return None

        new_task = NewTask(title=invite.title, category_id=category_id, due=due, repeat_type=repeat_type)

        def confirm(created: Task) -> None:
            if self._task_store is not None:
                self._task_store.insert(created)
            logger.info("Accepted invite id=%s -> task id=%s", invite_id, created.id)

        return await self._run(
            invite_id,
            remote=lambda: self._gateway.accept_invite(token, invite_id, new_task),
            confirm=confirm,
        )

    async def reject_invite(self, invite_id: str) -> MutationOutcome[None] | None:
        self.store.update(lambda s: replace(s, error_message=None))
        try:
            token = self._session.require_token()
        except TaskPilotError as e:
            self._fail(e)
            return None

        return await self._run(
            invite_id,
            remote=lambda: self._gateway.reject_invite(token, invite_id),
            confirm=None,
        )

    async def _run(self, invite_id: str, *, remote, confirm) -> MutationOutcome | None:
        try:
            outcome = await self._mutations.run(
                f"invite:{invite_id}",
                apply=lambda: self._remove(invite_id),
                remote=remote,
                confirm=confirm,
                rollback=self._restore,
            )
        except TaskPilotError as e:
            self._fail(e)
            return None
        if outcome.error is not None:
            self._fail(outcome.error)
        return outcome
