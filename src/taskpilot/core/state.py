# src/taskpilot/core/state.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from ..api.http import ApiTransport
    from ..auth.auth_store import AuthStore
    from ..categories.category_store import CategoryStore
    from ..collab.collab_store import CollabStore
    from ..collab.search import UserSearch
    from ..tasks.reminders import LocalReminderScheduler
    from ..tasks.task_store import TaskListStore
    from .session import Session

logger = logging.getLogger(__name__)

S = TypeVar("S")

Listener = Callable[[S], None]


class StateStore(Generic[S]):
    """
    Observable holder for an immutable snapshot.

    - `snapshot` is the current value (never mutated in place; use frozen dataclasses/tuples)
    - `set` / `update` swap the snapshot and notify listeners synchronously
    - listeners are not called when the new value equals the old one
    """

    def __init__(self, initial: S) -> None:
        self._snapshot = initial
        self._listeners: list[Listener[S]] = []

    @property
    def snapshot(self) -> S:
        return self._snapshot

    def subscribe(self, listener: Listener[S]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set(self, value: S) -> None:
        if value == self._snapshot:
            return
        self._snapshot = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("State listener failed.")

    def update(self, fn: Callable[[S], S]) -> S:
        self.set(fn(self._snapshot))
        return self._snapshot


@dataclass
class AppState:
    """Everything a connector needs, wired once by the composition root."""

    settings: Any

    transport: ApiTransport
    session: Session

    auth: AuthStore
    tasks: TaskListStore
    categories: CategoryStore
    collab: CollabStore
    user_search: UserSearch
    reminders: LocalReminderScheduler
