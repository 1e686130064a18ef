# src/taskpilot/api/category_api.py

from __future__ import annotations

from ..core.models import Category, decode_list
from .http import ApiTransport


class CategoryApi:
    prefix = "/tasks/taskcategory"

    def __init__(self, transport: ApiTransport) -> None:
        self._http = transport

    async def fetch_categories(self, token: str) -> list[Category]:
        return await self._http.request_model(
            "GET",
            self.prefix,
            lambda payload: decode_list(payload, Category.from_json),
            token=token,
            fallback_error="Failed to fetch categories",
        )

    async def create_category(self, token: str, *, title: str, color: str, icon: str) -> Category:
        return await self._http.request_model(
            "POST",
            f"{self.prefix}/create",
            Category.from_json,
            token=token,
            json_body={"title": title, "color": color, "icon": icon},
            fallback_error="Failed to create category",
        )

    async def update_category(
            self,
            token: str,
            category_id: str,
            *,
            title: str,
            color: str,
            icon: str,
    ) -> Category:
        return await self._http.request_model(
            "PUT",
            f"{self.prefix}/{category_id}",
            Category.from_json,
            token=token,
            json_body={"title": title, "color": color, "icon": icon},
            fallback_error="Failed to update category",
        )

    async def delete_category(self, token: str, category_id: str) -> None:
        await self._http.request(
            "DELETE",
            f"{self.prefix}/{category_id}",
            token=token,
            fallback_error="Failed to delete category",
        )
