# src/taskpilot/tasks/mutations.py

"""
Optimistic mutation controller.

Each mutation walks one of two paths:

    IDLE -> APPLYING -> CONFIRMED
    IDLE -> APPLYING -> ROLLED_BACK

`apply` makes the local change visible and returns whatever is needed to undo it;
`remote` performs the request; `confirm` installs the server's answer; `rollback`
restores the snapshot. A key (task id, invite id, ...) can only have one mutation in
flight: a second request for it is rejected with BusyError before anything happens.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

from ..core.errors import ApiError, BusyError, friendly_error_message

logger = logging.getLogger(__name__)

R = TypeVar("R")
Snap = TypeVar("Snap")


class MutationPhase(StrEnum):
    IDLE = "idle"
    APPLYING = "applying"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True, slots=True)
class MutationOutcome(Generic[R]):
    key: str
    phase: MutationPhase
    result: R | None = None
    error: ApiError | None = None

    @property
    def ok(self) -> bool:
        return self.phase == MutationPhase.CONFIRMED

    @property
    def message(self) -> str | None:
        return friendly_error_message(self.error) if self.error is not None else None


class OptimisticMutationController:
    """
    Tracks the keys that have a mutation in flight.

    Only in-flight keys are stored; a finished mutation reports its terminal phase on
    the returned MutationOutcome and its key drops back to IDLE.
    """

    def __init__(self) -> None:
        self._phases: dict[str, MutationPhase] = {}

    def phase(self, key: str) -> MutationPhase:
        return self._phases.get(key, MutationPhase.IDLE)

    def is_busy(self, key: str) -> bool:
        return self.phase(key) == MutationPhase.APPLYING

    def _acquire(self, key: str) -> None:
        if self.is_busy(key):
            logger.info("Mutation rejected (busy) key=%s", key)
            raise BusyError(key)
        self._phases[key] = MutationPhase.APPLYING

    def _release(self, key: str) -> None:
        self._phases.pop(key, None)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """
        Keep `key` busy for a non-optimistic change (e.g. an edit waiting on the server).

        Raises BusyError if another mutation on the key is in flight.
        """
        self._acquire(key)
        try:
            yield
        finally:
            self._release(key)

    async def run(
            self,
            key: str,
            *,
            apply: Callable[[], Snap],
            remote: Callable[[], Awaitable[R]],
            confirm: Callable[[R], Any] | None = None,
            rollback: Callable[[Snap], Any],
    ) -> MutationOutcome[R]:
        """
        Run one optimistic mutation.

        ApiError from `remote` -> rollback, ROLLED_BACK outcome (error kept on the outcome).
        Any other exception   -> rollback, then re-raised.
        """
        self._acquire(key)
        try:
            snapshot = apply()

            try:
                result = await remote()
            except ApiError as e:
                rollback(snapshot)
                logger.info("Mutation rolled back key=%s (%s)", key, e.__class__.__name__)
                return MutationOutcome(key=key, phase=MutationPhase.ROLLED_BACK, error=e)
            except BaseException:
                rollback(snapshot)
                raise

            if confirm is not None:
                confirm(result)
        finally:
            self._release(key)
        logger.debug("Mutation confirmed key=%s", key)
        return MutationOutcome(key=key, phase=MutationPhase.CONFIRMED, result=result)
