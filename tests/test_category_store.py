# tests/test_category_store.py

from __future__ import annotations

import pytest

from taskpilot.categories.category_store import CATEGORY_COLORS, CategoryStore, validate_category
from taskpilot.core.errors import InvalidInput, ServerError
from taskpilot.core.models import Category
from taskpilot.tasks.mutations import MutationPhase

from .fakes import FakeCategoryGateway, make_task


@pytest.fixture()
def category_gateway() -> FakeCategoryGateway:
    return FakeCategoryGateway(
        [
            Category(id="c2", title="work", color="#007AFF"),
            Category(id="c1", title="Home", color="#34C759"),
            Category(id="c3", title="Errands", color="#FF9500"),
        ]
    )


@pytest.fixture()
def categories(category_gateway, session, task_store, mutations) -> CategoryStore:
    return CategoryStore(category_gateway, session, task_store=task_store, mutations=mutations)


def test_validate_category_normalizes_color() -> None:
    assert validate_category("  Gym ", "#ff9500") == ("Gym", "#FF9500")
    with pytest.raises(InvalidInput):
        validate_category("", "#FF9500")
    with pytest.raises(InvalidInput):
        validate_category("Gym", "orange")


def test_palette_entries_are_valid_colors() -> None:
    for color in CATEGORY_COLORS:
        assert validate_category("x", color)[1] == color


@pytest.mark.asyncio
async def test_fetch_sorts_case_insensitively(categories) -> None:
    assert await categories.fetch_categories()
    assert [c.title for c in categories.categories] == ["Errands", "Home", "work"]


@pytest.mark.asyncio
async def test_create_rejects_bad_color_without_calling_server(categories, category_gateway) -> None:
    assert await categories.create_category(title="Gym", color="blue") is None
    assert categories.state.error_message == "Color must be a hex value like #FF9500."
    assert category_gateway.calls == []


@pytest.mark.asyncio
async def test_create_and_update(categories, category_gateway) -> None:
    created = await categories.create_category(title="Gym", color="#af52de", icon="dumbbell")
    assert created is not None
    assert category_gateway.called("create_category")[0][2] == "#AF52DE"
    assert categories.get(created.id) == created

    updated = await categories.update_category(created.id, title="Fitness", color="#AF52DE")
    assert updated is not None
    assert categories.get(created.id).title == "Fitness"


@pytest.mark.asyncio
async def test_delete_drops_category_tasks_on_confirm(categories, task_store, task_gateway) -> None:
    await categories.fetch_categories()
    task_gateway.tasks = {
        "a": make_task("a", category_id="c1"),
        "b": make_task("b", category_id="c2"),
    }
    await task_store.fetch_tasks()

    outcome = await categories.delete_category("c1")

    assert outcome.ok
    assert categories.get("c1") is None
    assert [t.id for t in task_store.tasks] == ["b"]


@pytest.mark.asyncio
async def test_delete_failure_restores_category_and_tasks(categories, category_gateway, task_store, task_gateway) -> None:
    await categories.fetch_categories()
    task_gateway.tasks = {"a": make_task("a", category_id="c1")}
    await task_store.fetch_tasks()
    category_gateway.fail_with["delete_category"] = ServerError("Failed to delete category")

    outcome = await categories.delete_category("c1")

    assert outcome.phase == MutationPhase.ROLLED_BACK
    assert [c.id for c in categories.categories] == ["c3", "c1", "c2"]
    assert [t.id for t in task_store.tasks] == ["a"]
    assert categories.state.error_message == "Failed to delete category"
