# src/taskpilot/collab/search.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace

from ..core.errors import TaskPilotError, friendly_error_message
from ..core.models import TaskUser
from ..core.ports import CollabGateway
from ..core.session import Session
from ..core.state import StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SearchState:
    query: str = ""
    users: tuple[TaskUser, ...] = ()
    is_loading: bool = False
    error_message: str | None = None


class UserSearch:
    """
    Debounced user search for the share sheet.

    Every new query cancels the pending one and resets the results. Queries shorter than
    `min_chars` (after trimming) stop there; longer ones wait `debounce_seconds` and then
    hit the backend. Must be driven from the running event loop.
    """

    def __init__(
            self,
            gateway: CollabGateway,
            session: Session,
            *,
            min_chars: int = 3,
            debounce_seconds: float = 0.4,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._min_chars = min_chars
        self._debounce = debounce_seconds
        self._pending: asyncio.Task[None] | None = None
        self.store: StateStore[SearchState] = StateStore(SearchState())

    @property
    def state(self) -> SearchState:
        return self.store.snapshot

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def update_query(self, term: str) -> asyncio.Task[None] | None:
        """Feed a new query (one call per keystroke). Returns the scheduled search, if any."""
        self.cancel()
        clean = (term or "").strip()
        self.store.set(SearchState(query=clean))

        if len(clean) < self._min_chars:
            return None

        self._pending = asyncio.create_task(self._search(clean))
        return self._pending

    async def search_now(self, term: str) -> tuple[TaskUser, ...]:
        """Convenience for non-interactive callers: update the query and wait for the result."""
        pending = self.update_query(term)
        if pending is not None:
            await pending
        return self.state.users

    async def _search(self, term: str) -> None:
        await asyncio.sleep(self._debounce)
        self.store.update(lambda s: replace(s, is_loading=True))
        try:
            token = self._session.require_token()
            users = await self._gateway.search_users(token, term)
        except TaskPilotError as e:
            msg = friendly_error_message(e)
            logger.info("User search failed: %s", msg)
            self.store.update(lambda s: replace(s, is_loading=False, error_message=msg))
            return

        if self.state.query != term:
            return
        self.store.set(SearchState(query=term, users=tuple(users)))
        logger.debug("User search %r -> %d results", term, len(users))
