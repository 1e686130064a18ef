# src/taskpilot/api/task_api.py

from __future__ import annotations

from ..core.models import NewTask, RecentTasks, Task, TaskEdit, decode_list
from .http import ApiTransport

BUCKET_PATHS = {
    "today": "today",
    "overdue": "overdue",
    "upcoming": "upcoming",
    "no_due": "nodue",
}


def _task_list(payload: object) -> list[Task]:
    return decode_list(payload, Task.from_json)


class TaskApi:
    """Task endpoints under /tasks/task."""

    prefix = "/tasks/task"

    def __init__(self, transport: ApiTransport) -> None:
        self._http = transport

    async def fetch_tasks(self, token: str) -> list[Task]:
        return await self._http.request_model(
            "GET", self.prefix, _task_list, token=token, fallback_error="Failed to fetch tasks"
        )

    async def fetch_recent(self, token: str) -> RecentTasks:
        return await self._http.request_model(
            "GET",
            f"{self.prefix}/recent",
            RecentTasks.from_json,
            token=token,
            fallback_error="Failed to fetch recent tasks",
        )

    async def fetch_bucket(self, token: str, bucket: str) -> list[Task]:
        """Server-side bucket listing (today / overdue / upcoming / no_due)."""
        try:
            segment = BUCKET_PATHS[bucket]
        except KeyError:
            raise ValueError(f"Unknown bucket: {bucket}") from None
        return await self._http.request_model(
            "GET",
            f"{self.prefix}/{segment}",
            _task_list,
            token=token,
            fallback_error=f"Failed to fetch {bucket.replace('_', ' ')} tasks",
        )

    async def fetch_for_category(self, token: str, category_id: str) -> list[Task]:
        return await self._http.request_model(
            "GET",
            f"{self.prefix}/{category_id}",
            _task_list,
            token=token,
            fallback_error="Failed to fetch category tasks",
        )

    async def create_task(self, token: str, new_task: NewTask) -> Task:
        return await self._http.request_model(
            "POST",
            f"{self.prefix}/create",
            Task.from_json,
            token=token,
            json_body=new_task.to_json(),
            fallback_error="Failed to create task",
        )

    async def toggle_task(self, token: str, task_id: str) -> Task:
        return await self._http.request_model(
            "PATCH",
            f"{self.prefix}/toggle/{task_id}",
            Task.from_json,
            token=token,
            fallback_error="Failed to toggle task",
        )

    async def edit_task(self, token: str, task_id: str, edit: TaskEdit) -> Task:
        return await self._http.request_model(
            "PUT",
            f"{self.prefix}/edit/{task_id}",
            Task.from_json,
            token=token,
            json_body=edit.to_json(),
            fallback_error="Failed to edit task",
        )

    async def delete_task(self, token: str, task_id: str) -> None:
        await self._http.request(
            "DELETE",
            f"{self.prefix}/delete/{task_id}",
            token=token,
            fallback_error="Failed to delete task",
        )
