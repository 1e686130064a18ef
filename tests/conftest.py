# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskpilot.core.models import AuthUser
from taskpilot.core.session import Session
from taskpilot.tasks.mutations import OptimisticMutationController
from taskpilot.tasks.reminders import LocalReminderScheduler
from taskpilot.tasks.task_store import TaskListStore

from .fakes import FakeCredentialStore, FakeTaskGateway

# Fixed "now" for store tests: 2026-03-10 12:00 UTC.
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskpilot",
        log_level="INFO",
        api_base_url="https://api.example.test",
        http_connect_timeout=1.0,
        http_read_timeout=1.0,
        # Paths (tmp per test run)
        data_dir=tmp_path / "data",
        credentials_path=tmp_path / "data" / "credentials.json",
        # Rules
        min_due_lead_seconds=60,
        search_min_chars=3,
        search_debounce_seconds=0.0,
        reminder_poll_seconds=0.01,
        console_enabled=False,
    )


@pytest.fixture()
def credentials() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture()
def session(credentials: FakeCredentialStore) -> Session:
    """A signed-in session."""
    s = Session(credentials)
    s.sign_in("tok-1", AuthUser(user_id="u1", initials="AL", full_name="Ada Lovelace"))
    return s


@pytest.fixture()
def mutations() -> OptimisticMutationController:
    return OptimisticMutationController()


@pytest.fixture()
def reminders() -> LocalReminderScheduler:
    return LocalReminderScheduler(clock=lambda: NOW)


@pytest.fixture()
def task_gateway() -> FakeTaskGateway:
    return FakeTaskGateway()


@pytest.fixture()
def task_store(
    task_gateway: FakeTaskGateway,
    session: Session,
    reminders: LocalReminderScheduler,
    mutations: OptimisticMutationController,
) -> TaskListStore:
    return TaskListStore(
        task_gateway,
        session,
        reminders=reminders,
        mutations=mutations,
        clock=lambda: NOW,
    )
