# src/taskpilot/categories/category_store.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..core.errors import InvalidInput, TaskPilotError, friendly_error_message
from ..core.models import Category
from ..core.ports import CategoryGateway
from ..core.session import Session
from ..core.state import StateStore
from ..tasks.mutations import MutationOutcome, OptimisticMutationController

if TYPE_CHECKING:
    from ..tasks.task_store import TaskListStore

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Palette offered by the category editor.
CATEGORY_COLORS: tuple[str, ...] = (
    "#FF3B30",
    "#FF9500",
    "#FFCC00",
    "#34C759",
    "#007AFF",
    "#0A84FF",
    "#64D2FF",
    "#32ADE6",
    "#5856D6",
    "#AF52DE",
    "#FF2D55",
    "#8E8E93",
    "#6D6D72",
    "#AC8E68",
)


def validate_category(title: str, color: str) -> tuple[str, str]:
    clean = (title or "").strip()
    if not clean:
        raise InvalidInput("Category title cannot be empty.")
    hex_color = (color or "").strip().upper()
    if not _HEX_COLOR.match(hex_color):
        raise InvalidInput("Color must be a hex value like #FF9500.")
    return clean, hex_color


def _sorted(categories: list[Category] | tuple[Category, ...]) -> tuple[Category, ...]:
    return tuple(sorted(categories, key=lambda c: c.title.casefold()))


@dataclass(frozen=True, slots=True)
class CategoryState:
    categories: tuple[Category, ...] = ()
    is_loading: bool = False
    error_message: str | None = None


class CategoryStore:
    def __init__(
            self,
            gateway: CategoryGateway,
            session: Session,
            *,
            task_store: TaskListStore | None = None,
            mutations: OptimisticMutationController | None = None,
    ) -> None:
        self._gateway = gateway
        self._session = session
        self._task_store = task_store
        self._mutations = mutations or OptimisticMutationController()
        self.store: StateStore[CategoryState] = StateStore(CategoryState())

    @property
    def state(self) -> CategoryState:
        return self.store.snapshot

    @property
    def categories(self) -> tuple[Category, ...]:
        return self.store.snapshot.categories

    def get(self, category_id: str) -> Category | None:
        return next((c for c in self.categories if c.id == category_id), None)

    def _set(self, categories: list[Category] | tuple[Category, ...]) -> None:
        self.store.update(lambda s: replace(s, categories=tuple(categories)))

    def _fail(self, err: BaseException) -> None:
        msg = friendly_error_message(err)
        logger.info("Category action failed: %s", msg)
        self.store.update(lambda s: replace(s, is_loading=False, error_message=msg))

    def _begin(self) -> None:
        self.store.update(lambda s: replace(s, is_loading=True, error_message=None))

    async def fetch_categories(self) -> bool:
        self._begin()
        try:
            token = self._session.require_token()
            categories = await self._gateway.fetch_categories(token)
        except TaskPilotError as e:
            self._fail(e)
            return False
        self.store.update(lambda s: replace(s, categories=_sorted(categories), is_loading=False))
        return True

    async def create_category(self, *, title: str, color: str, icon: str = "") -> Category | None:
        self._begin()
        try:
            clean, hex_color = validate_category(title, color)
            token = self._session.require_token()
            created = await self._gateway.create_category(token, title=clean, color=hex_color, icon=icon)
        except TaskPilotError as e:
            self._fail(e)
            return None
        self.store.update(
            lambda s: replace(s, categories=s.categories + (created,), is_loading=False)
        )
        logger.info("Created category id=%s", created.id)
        return created

    async def update_category(
            self,
            category_id: str,
            *,
            title: str,
            color: str,
            icon: str = "",
    ) -> Category | None:
        self._begin()
        try:
            clean, hex_color = validate_category(title, color)
            token = self._session.require_token()
            updated = await self._gateway.update_category(
                token, category_id, title=clean, color=hex_color, icon=icon
            )
        except TaskPilotError as e:
            self._fail(e)
            return None

        categories = [updated if c.id == category_id else c for c in self.categories]
        self.store.update(lambda s: replace(s, categories=tuple(categories), is_loading=False))
        return updated

    async def delete_category(self, category_id: str) -> MutationOutcome[None] | None:
        """Optimistic delete; tasks of the category are dropped once the server confirms."""
        try:
            token = self._session.require_token()
        except TaskPilotError as e:
            self._fail(e)
            return None

        def apply() -> tuple[int, Category] | None:
            categories = list(self.categories)
            for i, c in enumerate(categories):
                if c.id == category_id:
                    del categories[i]
                    self._set(categories)
                    return i, c
            return None

        def rollback(removed: tuple[int, Category] | None) -> None:
            if removed is None:
                return
            index, category = removed
            categories = [c for c in self.categories if c.id != category.id]
            categories.insert(min(index, len(categories)), category)
            self._set(categories)

        def confirm(_: None) -> None:
            if self._task_store is not None:
                self._task_store.drop_category(category_id)

        self.store.update(lambda s: replace(s, error_message=None))
        try:
            outcome = await self._mutations.run(
                f"category:{category_id}",
                apply=apply,
                remote=lambda: self._gateway.delete_category(token, category_id),
                confirm=confirm,
                rollback=rollback,
            )
        except TaskPilotError as e:
            self._fail(e)
            return None
        if outcome.error is not None:
            self._fail(outcome.error)
        return outcome
