# src/taskpilot/core/ports.py

"""
Ports (interfaces) used by the stores.

Stores depend on Protocols instead of concrete implementations.
This keeps the HTTP gateway, credential storage and notification delivery swappable
and makes testing easier (see tests/fakes.py).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from .models import (
    AuthResponse,
    AuthUser,
    Category,
    NewTask,
    RecentTasks,
    ShareInvite,
    Task,
    TaskEdit,
    TaskUser,
)


class TaskGateway(Protocol):
    async def fetch_tasks(self, token: str) -> list[Task]: ...
    async def fetch_recent(self, token: str) -> RecentTasks: ...
    async def fetch_bucket(self, token: str, bucket: str) -> list[Task]: ...
    async def fetch_for_category(self, token: str, category_id: str) -> list[Task]: ...
    async def create_task(self, token: str, new_task: NewTask) -> Task: ...
    async def toggle_task(self, token: str, task_id: str) -> Task: ...
    async def edit_task(self, token: str, task_id: str, edit: TaskEdit) -> Task: ...
    async def delete_task(self, token: str, task_id: str) -> None: ...


class CategoryGateway(Protocol):
    async def fetch_categories(self, token: str) -> list[Category]: ...
    async def create_category(self, token: str, *, title: str, color: str, icon: str) -> Category: ...
    async def update_category(
            self,
            token: str,
            category_id: str,
            *,
            title: str,
            color: str,
            icon: str,
    ) -> Category: ...
    async def delete_category(self, token: str, category_id: str) -> None: ...


class CollabGateway(Protocol):
    async def search_users(self, token: str, search: str) -> list[TaskUser]: ...
    async def share_task(self, token: str, *, task_id: str, shared_with_user_id: str) -> None: ...
    async def fetch_invites(self, token: str) -> list[ShareInvite]: ...
    async def accept_invite(self, token: str, invite_id: str, new_task: NewTask) -> Task: ...
    async def reject_invite(self, token: str, invite_id: str) -> None: ...


class AuthGateway(Protocol):
    async def login(self, *, email: str, password: str) -> AuthResponse: ...
    async def signup(self, *, full_name: str, email: str, password: str) -> None: ...
    async def verify(self, *, email: str, otp: str) -> AuthResponse: ...
    async def send_reset_otp(self, *, email: str) -> None: ...
    async def confirm_reset_otp(self, *, email: str, otp: str) -> None: ...
    async def reset_password(self, *, email: str, otp: str, new_password: str) -> AuthResponse: ...
    async def resend_otp(self, *, email: str, otp_purpose: int) -> None: ...


class CredentialStore(Protocol):
    """Secure credential storage (OS keychain on a device, a private file here)."""

    def load(self) -> tuple[str, AuthUser | None] | None: ...
    def save(self, token: str, user: AuthUser | None) -> None: ...
    def clear(self) -> None: ...


class ReminderScheduler(Protocol):
    """Local reminder scheduling. Implementations skip due times in the past."""

    def schedule(self, task_id: str, title: str, due: datetime) -> bool: ...
    def cancel(self, task_id: str) -> None: ...


class Notifier(Protocol):
    """Delivery side of reminders (OS notification center, console, ...)."""

    async def notify(self, *, title: str, body: str, payload: dict[str, Any] | None = None) -> None: ...
