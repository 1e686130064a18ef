# tests/test_collab_store.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from taskpilot.collab.collab_store import CollabState, CollabStore
from taskpilot.collab.search import UserSearch
from taskpilot.core.errors import NetworkUnreachable, ServerError
from taskpilot.core.models import ShareInvite, TaskUser
from taskpilot.tasks.mutations import MutationPhase

from .conftest import NOW
from .fakes import FakeCollabGateway


def _invites() -> list[ShareInvite]:
    return [
        ShareInvite(id="i1", title="Plan trip", invited_by_email="a@x.io"),
        ShareInvite(id="i2", title="Buy gift", invited_by_email="b@x.io"),
        ShareInvite(id="i3", title="Book hotel", invited_by_email="a@x.io"),
    ]


@pytest.fixture()
def collab_gateway() -> FakeCollabGateway:
    return FakeCollabGateway(
        invites=_invites(),
        users=[
            TaskUser(id="u2", full_name="Grace Hopper", email="grace@navy.mil"),
            TaskUser(id="u3", full_name="Alan Turing", email="alan@bletchley.uk"),
        ],
    )


@pytest.fixture()
def collab(collab_gateway, session, task_store, mutations) -> CollabStore:
    store = CollabStore(
        collab_gateway,
        session,
        task_store=task_store,
        mutations=mutations,
        clock=lambda: NOW,
    )
    # Same snapshot fetch_invites() would install.
    store.store.set(CollabState(invites=tuple(collab_gateway.invites)))
    return store


@pytest.mark.asyncio
async def test_accept_removes_invite_and_adds_task(collab, collab_gateway, task_store) -> None:
    outcome = await collab.accept_invite("i2", category_id="c1", due=NOW + timedelta(hours=1))

    assert outcome is not None and outcome.ok
    assert [i.id for i in collab.invites] == ["i1", "i3"]
    assert task_store.get("from-i2").title == "Buy gift"
    (sent,) = collab_gateway.called("accept_invite")
    assert sent[2].category_id == "c1"


@pytest.mark.asyncio
async def test_accept_failure_restores_invite_at_its_index(collab, collab_gateway, task_store) -> None:
    collab_gateway.fail_with["accept_invite"] = ServerError("Something went wrong while accepting the request.")

    outcome = await collab.accept_invite("i2", category_id="c1")

    assert outcome.phase == MutationPhase.ROLLED_BACK
    assert [i.id for i in collab.invites] == ["i1", "i2", "i3"]
    assert task_store.tasks == ()
    assert collab.state.error_message == "Something went wrong while accepting the request."


@pytest.mark.asyncio
async def test_reject_failure_restores_invite(collab, collab_gateway) -> None:
    collab_gateway.fail_with["reject_invite"] = NetworkUnreachable()

    outcome = await collab.reject_invite("i1")

    assert outcome.phase == MutationPhase.ROLLED_BACK
    assert [i.id for i in collab.invites] == ["i1", "i2", "i3"]


@pytest.mark.asyncio
async def test_reject_success_drops_invite(collab, collab_gateway) -> None:
    outcome = await collab.reject_invite("i3")

    assert outcome.ok
    assert [i.id for i in collab.invites] == ["i1", "i2"]
    assert collab_gateway.called("reject_invite") == [("tok-1", "i3")]


@pytest.mark.asyncio
async def test_accept_validates_before_calling_server(collab, collab_gateway) -> None:
    assert await collab.accept_invite("i1", category_id="  ") is None
    assert collab.state.error_message == "Pick a category for the task."

    assert await collab.accept_invite("i1", category_id="c1", due=NOW + timedelta(seconds=10)) is None
    assert collab.state.error_message == "Due time must be at least 1 minute from now."

    assert await collab.accept_invite("nope", category_id="c1") is None
    assert collab.state.error_message == "This request is no longer pending."

    assert collab_gateway.called("accept_invite") == []
    assert len(collab.invites) == 3


@pytest.mark.asyncio
async def test_second_accept_while_in_flight_is_busy(collab, collab_gateway) -> None:
    gate = collab_gateway.gates["accept_invite"] = asyncio.Event()
    first = asyncio.create_task(collab.accept_invite("i1", category_id="c1"))
    await asyncio.sleep(0)

    assert await collab.reject_invite("i1") is None
    assert "Still syncing" in collab.state.error_message

    gate.set()
    assert (await first).ok
    assert collab_gateway.called("reject_invite") == []


@pytest.mark.asyncio
async def test_share_task_posts_ids(collab, collab_gateway) -> None:
    assert await collab.share_task("t1", "u2")
    assert collab_gateway.called("share_task") == [("tok-1", "t1", "u2")]


@pytest.mark.asyncio
async def test_search_below_min_chars_never_calls_backend(collab_gateway, session) -> None:
    search = UserSearch(collab_gateway, session, min_chars=3, debounce_seconds=0.0)

    assert search.update_query("gr") is None
    assert search.update_query("  g ") is None
    assert await search.search_now("ab") == ()

    assert collab_gateway.called("search_users") == []
    assert search.state.users == ()


@pytest.mark.asyncio
async def test_search_debounce_keeps_only_the_last_query(collab_gateway, session) -> None:
    search = UserSearch(collab_gateway, session, min_chars=3, debounce_seconds=0.05)

    first = search.update_query("gra")
    second = search.update_query("grace")
    await asyncio.sleep(0)
    assert first.cancelled()

    await second

    assert collab_gateway.called("search_users") == [("tok-1", "grace")]
    assert [u.id for u in search.state.users] == ["u2"]
    assert search.state.query == "grace"


@pytest.mark.asyncio
async def test_short_query_clears_previous_results(collab_gateway, session) -> None:
    search = UserSearch(collab_gateway, session, min_chars=3, debounce_seconds=0.0)
    assert [u.id for u in await search.search_now("alan")] == ["u3"]

    search.update_query("al")

    assert search.state.users == ()


@pytest.mark.asyncio
async def test_search_failure_sets_error(collab_gateway, session) -> None:
    search = UserSearch(collab_gateway, session, min_chars=3, debounce_seconds=0.0)
    collab_gateway.fail_with["search_users"] = NetworkUnreachable()

    assert await search.search_now("grace") == ()
    assert search.state.error_message == "Cannot reach the server. Check your connection."


@pytest.mark.asyncio
async def test_fetch_invites_replaces_pending_list(collab, collab_gateway) -> None:
    collab_gateway.invites = collab_gateway.invites[:1]

    assert await collab.fetch_invites()
    assert [i.id for i in collab.invites] == ["i1"]
    assert not collab.state.is_loading
