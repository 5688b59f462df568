"""
Async HTTP client for the Planboard API.

Attaches the bearer token, unwraps the response envelope and, on a 401,
refreshes the access token once and retries. Concurrent requests that hit
a 401 together share a single refresh call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

_REFRESH_PATH = "/api/auth/refresh"


class ApiClientError(RuntimeError):
    """Raised for any response whose envelope has success=false."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code

    def __repr__(self) -> str:
        return f"<ApiClientError status={self.status_code} code={self.code} message={self.message!r}>"


class PlanboardClient:
    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        refresh_token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        on_tokens: Callable[[str, str], None] | None = None,
    ) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        self._on_tokens = on_tokens
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self._refresh_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> PlanboardClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the full success envelope."""
        token_used = self.access_token
        response = await self._send(method, path, json, params, token_used)

        if response.status_code == 401 and self.refresh_token and path != _REFRESH_PATH:
            # Another request may already have swapped the token in
            if self.access_token == token_used:
                await self.refresh()
            response = await self._send(method, path, json, params, self.access_token)

        return self._unwrap(response)

    async def _send(
        self,
        method: str,
        path: str,
        json: Any,
        params: dict[str, Any] | None,
        token: str | None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return await self._http.request(method, path, json=json, params=params, headers=headers)

    @staticmethod
    def _unwrap(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            raise ApiClientError(response.status_code, response.text or "Invalid response body")

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            error = error or {}
            raise ApiClientError(
                response.status_code,
                error.get("message", "Request failed"),
                error.get("code"),
            )
        return body

    async def refresh(self) -> None:
        """
        Exchange the refresh token for a new pair.

        Single flight: while a refresh is running, every caller awaits the
        same task. The slot is cleared when it finishes, success or not.
        """
        task = self._refresh_task
        if task is None:
            task = asyncio.create_task(self._do_refresh())
            self._refresh_task = task
            task.add_done_callback(self._clear_refresh)
        await asyncio.shield(task)

    def _clear_refresh(self, task: asyncio.Task[None]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _do_refresh(self) -> None:
        response = await self._http.post(_REFRESH_PATH, json={"refreshToken": self.refresh_token})
        data = self._unwrap(response)["data"]
        self._set_tokens(data["accessToken"], data["refreshToken"])
        logger.debug("Access token refreshed")

    def _set_tokens(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token
        if self._on_tokens is not None:
            self._on_tokens(access_token, refresh_token)

    async def _data(self, method: str, path: str, json: Any = None, params: dict[str, Any] | None = None) -> Any:
        return (await self.request(method, path, json=json, params=params)).get("data")

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        data = await self._data("POST", "/api/auth/register", {"name": name, "email": email, "password": password})
        self._set_tokens(data["accessToken"], data["refreshToken"])
        return data

    async def login(self, email: str, password: str) -> dict[str, Any]:
        data = await self._data("POST", "/api/auth/login", {"email": email, "password": password})
        self._set_tokens(data["accessToken"], data["refreshToken"])
        return data

    async def logout(self) -> None:
        await self._data("POST", "/api/auth/logout", {"refreshToken": self.refresh_token})
        self.access_token = None
        self.refresh_token = None

    async def me(self) -> dict[str, Any]:
        return await self._data("GET", "/api/users/me")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, page: int = 1, limit: int = 20, search: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        return await self.request("GET", "/api/projects", params=params)

    async def create_project(self, name: str, description: str | None = None) -> dict[str, Any]:
        return await self._data("POST", "/api/projects", {"name": name, "description": description})

    async def get_project(self, project_id: UUID | str) -> dict[str, Any]:
        return await self._data("GET", f"/api/projects/{project_id}")

    async def update_project(self, project_id: UUID | str, **fields: Any) -> dict[str, Any]:
        return await self._data("PUT", f"/api/projects/{project_id}", fields)

    async def delete_project(self, project_id: UUID | str) -> None:
        await self._data("DELETE", f"/api/projects/{project_id}")

    async def project_stats(self, project_id: UUID | str) -> dict[str, Any]:
        return await self._data("GET", f"/api/projects/{project_id}/stats")

    async def add_member(self, project_id: UUID | str, user_id: UUID | str, role: str = "member") -> dict[str, Any]:
        return await self._data(
            "POST", f"/api/projects/{project_id}/members", {"userId": str(user_id), "role": role}
        )

    async def remove_member(self, project_id: UUID | str, user_id: UUID | str) -> None:
        await self._data("DELETE", f"/api/projects/{project_id}/members/{user_id}")

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def list_tasks(self, project_id: UUID | str, **filters: Any) -> dict[str, Any]:
        params = {key: value for key, value in filters.items() if value is not None}
        return await self.request("GET", f"/api/projects/{project_id}/tasks", params=params)

    async def create_task(self, project_id: UUID | str, title: str, **fields: Any) -> dict[str, Any]:
        return await self._data("POST", f"/api/projects/{project_id}/tasks", {"title": title, **fields})

    async def get_task(self, task_id: UUID | str) -> dict[str, Any]:
        return await self._data("GET", f"/api/tasks/{task_id}")

    async def update_task(self, task_id: UUID | str, **fields: Any) -> dict[str, Any]:
        return await self._data("PUT", f"/api/tasks/{task_id}", fields)

    async def delete_task(self, task_id: UUID | str) -> None:
        await self._data("DELETE", f"/api/tasks/{task_id}")

    async def add_comment(self, task_id: UUID | str, content: str) -> dict[str, Any]:
        return await self._data("POST", f"/api/tasks/{task_id}/comments", {"content": content})

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def list_notifications(self, read: bool | None = None, page: int = 1, limit: int = 20) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if read is not None:
            params["read"] = str(read).lower()
        return await self.request("GET", "/api/notifications", params=params)

    async def mark_all_notifications_read(self) -> int:
        data = await self._data("POST", "/api/notifications/mark-all-read")
        return data["updated"]
