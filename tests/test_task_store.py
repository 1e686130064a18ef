# tests/test_task_store.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from taskpilot.core.errors import NetworkUnreachable, ServerError
from taskpilot.core.models import UNSET, RepeatType, TaskEdit
from taskpilot.core.session import Session
from taskpilot.tasks.classifier import Bucket
from taskpilot.tasks.mutations import MutationPhase
from taskpilot.tasks.task_store import TaskListStore

from .conftest import NOW
from .fakes import FakeCredentialStore, FakeTaskGateway, make_task


async def _loaded(store: TaskListStore, gateway: FakeTaskGateway, *tasks) -> None:
    gateway.tasks = {t.id: t for t in tasks}
    assert await store.fetch_tasks()


@pytest.mark.asyncio
async def test_fetch_tasks_replaces_snapshot_and_buckets(task_store, task_gateway) -> None:
    overdue = make_task("1", due=NOW - timedelta(hours=1))
    later = make_task("2", due=NOW + timedelta(days=2))
    await _loaded(task_store, task_gateway, overdue, later)

    assert task_store.tasks == (overdue, later)
    buckets = task_store.buckets(tz=NOW.tzinfo)
    assert buckets.get(Bucket.OVERDUE) == (overdue,)
    assert buckets.get(Bucket.UPCOMING) == (later,)
    assert task_gateway.called("fetch_tasks") == [("tok-1",)]


@pytest.mark.asyncio
async def test_fetch_failure_sets_error_message(task_store, task_gateway) -> None:
    task_gateway.fail_with["fetch_tasks"] = NetworkUnreachable()

    assert not await task_store.fetch_tasks()
    assert task_store.state.error_message == "Cannot reach the server. Check your connection."
    assert not task_store.state.is_loading


@pytest.mark.asyncio
async def test_signed_out_store_never_calls_gateway(task_gateway) -> None:
    store = TaskListStore(task_gateway, Session(FakeCredentialStore()))

    assert not await store.fetch_tasks()
    assert store.state.error_message == "You must be logged in."
    assert task_gateway.calls == []


@pytest.mark.asyncio
async def test_toggle_twice_returns_to_original_state(task_store, task_gateway) -> None:
    task = make_task("1", due=NOW + timedelta(hours=3))
    await _loaded(task_store, task_gateway, task)

    first = await task_store.toggle_task("1")
    assert first is not None and first.ok
    assert task_store.get("1").is_completed
    second = await task_store.toggle_task("1")
    assert second is not None and second.ok

    assert task_store.get("1").is_completed is False
    assert len(task_gateway.called("toggle_task")) == 2


@pytest.mark.asyncio
async def test_toggle_is_visible_before_the_server_answers(task_store, task_gateway) -> None:
    await _loaded(task_store, task_gateway, make_task("1"))
    gate = task_gateway.gates["toggle_task"] = asyncio.Event()

    pending = asyncio.create_task(task_store.toggle_task("1"))
    await asyncio.sleep(0)
    assert task_store.get("1").is_completed
    assert task_store.mutations.phase("1") == MutationPhase.APPLYING

    gate.set()
    outcome = await pending
    assert outcome.ok
    assert task_store.get("1").is_completed


@pytest.mark.asyncio
async def test_toggle_failure_restores_task(task_store, task_gateway) -> None:
    await _loaded(task_store, task_gateway, make_task("1"))
    task_gateway.fail_with["toggle_task"] = ServerError("Failed to toggle task")

    outcome = await task_store.toggle_task("1")

    assert outcome.phase == MutationPhase.ROLLED_BACK
    assert task_store.get("1").is_completed is False
    assert task_store.state.error_message == "Failed to toggle task"


@pytest.mark.asyncio
async def test_concurrent_toggle_of_same_task_is_rejected(task_store, task_gateway) -> None:
    await _loaded(task_store, task_gateway, make_task("1"))
    gate = task_gateway.gates["toggle_task"] = asyncio.Event()

    first = asyncio.create_task(task_store.toggle_task("1"))
    await asyncio.sleep(0)

    assert await task_store.toggle_task("1") is None
    assert "Still syncing" in task_store.state.error_message
    # The rejected toggle did not flip the task back.
    assert task_store.get("1").is_completed

    gate.set()
    assert (await first).ok
    assert len(task_gateway.called("toggle_task")) == 1


@pytest.mark.asyncio
async def test_delete_failure_reinserts_at_original_index(task_store, task_gateway) -> None:
    a, b, c = make_task("a"), make_task("b"), make_task("c")
    await _loaded(task_store, task_gateway, a, b, c)
    task_gateway.fail_with["delete_task"] = NetworkUnreachable()

    outcome = await task_store.delete_task("b")

    assert outcome.phase == MutationPhase.ROLLED_BACK
    assert [t.id for t in task_store.tasks] == ["a", "b", "c"]
    assert task_store.tasks[1] == b


@pytest.mark.asyncio
async def test_delete_success_removes_task_and_reminder(task_store, task_gateway, reminders) -> None:
    task = make_task("a", due=NOW + timedelta(hours=1))
    await _loaded(task_store, task_gateway, task)
    reminders.schedule("a", task.title, task.due)

    outcome = await task_store.delete_task("a")

    assert outcome.ok
    assert task_store.tasks == ()
    assert reminders.pending() == []


@pytest.mark.asyncio
async def test_add_task_rejects_due_under_a_minute(task_store, task_gateway) -> None:
    created = await task_store.add_task(
        title="Soon", category_id="c1", due=NOW + timedelta(seconds=30)
    )

    assert created is None
    assert task_store.state.error_message == "Due time must be at least 1 minute from now."
    assert task_gateway.called("create_task") == []


@pytest.mark.asyncio
async def test_add_task_rejects_blank_title(task_store, task_gateway) -> None:
    assert await task_store.add_task(title="   ", category_id="c1") is None
    assert task_store.state.error_message == "Title cannot be empty."
    assert task_gateway.calls == []


@pytest.mark.asyncio
async def test_add_task_creates_and_schedules_reminder(task_store, task_gateway, reminders) -> None:
    due = NOW + timedelta(hours=2)

    created = await task_store.add_task(
        title="  Dentist ", category_id="c1", due=due, repeat_type=RepeatType.WEEKLY
    )

    assert created is not None and created.title == "Dentist"
    assert task_store.get(created.id) == created
    (sent,) = task_gateway.called("create_task")
    assert sent[1].to_json()["repeat"] == int(RepeatType.WEEKLY)
    assert [r.task_id for r in reminders.pending()] == [created.id]


@pytest.mark.asyncio
async def test_edit_clearing_due_cancels_reminder(task_store, task_gateway, reminders) -> None:
    task = make_task("a", due=NOW + timedelta(hours=1))
    await _loaded(task_store, task_gateway, task)
    reminders.schedule("a", task.title, task.due)

    updated = await task_store.edit_task("a", TaskEdit(due=None))

    assert updated is not None and updated.due is None
    assert reminders.pending() == []
    (sent,) = task_gateway.called("edit_task")
    assert sent[2].to_json() == {"due": None}


@pytest.mark.asyncio
async def test_empty_edit_is_rejected(task_store, task_gateway) -> None:
    assert await task_store.edit_task("a", TaskEdit(title=UNSET)) is None
    assert task_store.state.error_message == "Nothing to update."
    assert task_gateway.calls == []


@pytest.mark.asyncio
async def test_drop_category_forgets_its_tasks(task_store, task_gateway) -> None:
    await _loaded(
        task_store,
        task_gateway,
        make_task("a", category_id="work"),
        make_task("b", category_id="home"),
    )

    task_store.drop_category("work")

    assert [t.id for t in task_store.tasks] == ["b"]


@pytest.mark.asyncio
async def test_listeners_see_each_snapshot(task_store, task_gateway) -> None:
    seen: list[bool] = []
    unsubscribe = task_store.store.subscribe(lambda s: seen.append(s.is_loading))

    await task_store.fetch_tasks()
    unsubscribe()
    await task_store.fetch_tasks()

    assert seen == [True, False]


@pytest.mark.asyncio
async def test_edit_during_pending_delete_is_busy(task_store, task_gateway) -> None:
    await _loaded(task_store, task_gateway, make_task("a", "Old"))
    gate = task_gateway.gates["delete_task"] = asyncio.Event()

    pending = asyncio.create_task(task_store.delete_task("a"))
    await asyncio.sleep(0)

    assert await task_store.edit_task("a", TaskEdit(title="New")) is None
    assert "Still syncing" in task_store.state.error_message
    assert task_gateway.called("edit_task") == []

    gate.set()
    assert (await pending).ok
    assert task_store.tasks == ()
    assert task_gateway.tasks == {}


@pytest.mark.asyncio
async def test_edit_during_failing_toggle_is_busy(task_store, task_gateway) -> None:
    await _loaded(task_store, task_gateway, make_task("a", "Old"))
    gate = task_gateway.gates["toggle_task"] = asyncio.Event()
    task_gateway.fail_with["toggle_task"] = ServerError("Failed to toggle task")

    pending = asyncio.create_task(task_store.toggle_task("a"))
    await asyncio.sleep(0)
    assert await task_store.edit_task("a", TaskEdit(title="New")) is None

    gate.set()
    assert (await pending).phase == MutationPhase.ROLLED_BACK
    assert task_store.get("a").title == "Old"
    assert task_store.get("a").is_completed is False

    # Once the toggle has settled the edit goes through.
    updated = await task_store.edit_task("a", TaskEdit(title="New"))
    assert updated is not None
    assert task_store.get("a").title == "New"


@pytest.mark.asyncio
async def test_toggle_while_edit_is_pending_is_busy(task_store, task_gateway) -> None:
    await _loaded(task_store, task_gateway, make_task("a", "Old"))
    gate = task_gateway.gates["edit_task"] = asyncio.Event()

    pending = asyncio.create_task(task_store.edit_task("a", TaskEdit(title="New")))
    await asyncio.sleep(0)

    assert await task_store.toggle_task("a") is None
    assert await task_store.delete_task("a") is None
    assert task_gateway.called("toggle_task") == []
    assert task_gateway.called("delete_task") == []

    gate.set()
    assert (await pending).title == "New"
    assert not task_store.mutations.is_busy("a")


@pytest.mark.asyncio
async def test_edit_of_unlisted_task_does_not_add_it(task_store, task_gateway) -> None:
    task_gateway.tasks = {"a": make_task("a", "Old")}

    updated = await task_store.edit_task("a", TaskEdit(title="New"))

    assert updated is not None and updated.title == "New"
    assert task_store.tasks == ()


@pytest.mark.asyncio
async def test_fetch_for_category_returns_server_list(task_store, task_gateway) -> None:
    task_gateway.tasks = {
        "a": make_task("a", category_id="work"),
        "b": make_task("b", category_id="home"),
    }

    listed = await task_store.fetch_for_category("work")

    assert [t.id for t in listed] == ["a"]
    assert task_gateway.called("fetch_for_category") == [("tok-1", "work")]
    assert not task_store.state.is_loading
    # The main snapshot is left alone.
    assert task_store.tasks == ()


@pytest.mark.asyncio
async def test_fetch_for_category_failure_sets_error(task_store, task_gateway) -> None:
    task_gateway.fail_with["fetch_for_category"] = NetworkUnreachable()

    assert await task_store.fetch_for_category("work") is None
    assert task_store.state.error_message == "Cannot reach the server. Check your connection."


@pytest.mark.asyncio
async def test_fetch_bucket_uses_server_listing(task_store, task_gateway) -> None:
    overdue = make_task("o", due=NOW - timedelta(days=1))
    task_gateway.buckets["overdue"] = [overdue]

    assert await task_store.fetch_bucket("overdue") == [overdue]
    assert await task_store.fetch_bucket("upcoming") == []
    assert task_gateway.called("fetch_bucket") == [("tok-1", "overdue"), ("tok-1", "upcoming")]


@pytest.mark.asyncio
async def test_fetch_bucket_rejects_unknown_name(task_store, task_gateway) -> None:
    assert await task_store.fetch_bucket("someday") is None
    assert task_store.state.error_message == "Unknown due filter: someday."
    assert task_gateway.calls == []
