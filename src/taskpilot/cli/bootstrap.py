# src/taskpilot/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the HTTP transport, gateways, session and per-screen stores into AppState.

Nothing else in the package reaches for a global: everything is passed in from here.
"""

from __future__ import annotations

import logging

from ..api.auth_api import AuthApi
from ..api.category_api import CategoryApi
from ..api.collab_api import CollabApi
from ..api.http import ApiTransport, make_timeout
from ..api.task_api import TaskApi
from ..auth.auth_store import AuthStore
from ..categories.category_store import CategoryStore
from ..collab.collab_store import CollabStore
from ..collab.search import UserSearch
from ..config import get_settings
from ..core.session import FileCredentialStore, Session
from ..core.state import AppState
from ..tasks.mutations import OptimisticMutationController
from ..tasks.reminders import LocalReminderScheduler
from ..tasks.task_store import TaskListStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.credentials_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, transport: ApiTransport | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the transport) injectable makes the app easier to test and avoids
    hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    session = Session(FileCredentialStore(settings.credentials_path))

    if transport is None:
        transport = ApiTransport(
            base_url=settings.api_base_url,
            timeout=make_timeout(settings.http_connect_timeout, settings.http_read_timeout),
        )
    # A 401 anywhere logs the user out everywhere.
    transport.set_unauthorized_handler(session.invalidate)

    reminders = LocalReminderScheduler()
    # One controller for every store: an id is never in flight twice.
    mutations = OptimisticMutationController()

    tasks = TaskListStore(
        TaskApi(transport),
        session,
        reminders=reminders,
        mutations=mutations,
        min_due_lead_seconds=settings.min_due_lead_seconds,
    )
    categories = CategoryStore(CategoryApi(transport), session, task_store=tasks, mutations=mutations)
    collab_api = CollabApi(transport)
    collab = CollabStore(
        collab_api,
        session,
        task_store=tasks,
        mutations=mutations,
        min_due_lead_seconds=settings.min_due_lead_seconds,
    )
    user_search = UserSearch(
        collab_api,
        session,
        min_chars=settings.search_min_chars,
        debounce_seconds=settings.search_debounce_seconds,
    )

    if session.restore():
        logger.info("Using stored session.")

    return AppState(
        settings=settings,
        transport=transport,
        session=session,
        auth=AuthStore(AuthApi(transport), session),
        tasks=tasks,
        categories=categories,
        collab=collab,
        user_search=user_search,
        reminders=reminders,
    )
