# src/taskpilot/api/collab_api.py

from __future__ import annotations

from ..core.models import NewTask, ShareInvite, Task, TaskUser, decode_list
from .http import ApiTransport


class CollabApi:
    """Sharing endpoints: user search, share invites, pending requests."""

    prefix = "/userinsights/taskuser"

    def __init__(self, transport: ApiTransport) -> None:
        self._http = transport

    async def search_users(self, token: str, search: str) -> list[TaskUser]:
        return await self._http.request_model(
            "GET",
            self.prefix,
            lambda payload: decode_list(payload, TaskUser.from_json),
            token=token,
            params={"searchTerm": search},
            fallback_error="Failed to fetch users",
        )

    async def share_task(self, token: str, *, task_id: str, shared_with_user_id: str) -> None:
        await self._http.request(
            "POST",
            f"{self.prefix}/share",
            token=token,
            json_body={"taskId": task_id, "sharedWithUserId": shared_with_user_id},
            fallback_error="Failed to share task",
        )

    async def fetch_invites(self, token: str) -> list[ShareInvite]:
        return await self._http.request_model(
            "GET",
            f"{self.prefix}/requests",
            lambda payload: decode_list(payload, ShareInvite.from_json),
            token=token,
            fallback_error="Failed to fetch requests",
        )

    async def accept_invite(self, token: str, invite_id: str, new_task: NewTask) -> Task:
        """Accept an invite; the server creates the recipient's copy of the task."""
        return await self._http.request_model(
            "POST",
            f"{self.prefix}/requests/{invite_id}/accept",
            Task.from_json,
            token=token,
            json_body=new_task.to_json(),
            fallback_error="Something went wrong while accepting the request.",
        )

    async def reject_invite(self, token: str, invite_id: str) -> None:
        await self._http.request(
            "POST",
            f"{self.prefix}/requests/{invite_id}/reject",
            token=token,
            fallback_error="Failed to reject the request.",
        )
