"""
PlanboardClient tests.

Unit tests run against httpx.MockTransport; the last test drives the real
app in-process.
"""

import asyncio
import uuid

import httpx
import pytest

from planboard.client import ApiClientError, PlanboardClient
from planboard.main import app


def ok(data=None, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"success": True, "data": data})


def fail(status_code: int, message: str, code: str) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"success": False, "error": {"message": message, "statusCode": status_code, "code": code}},
    )


class FakeApi:
    """Accepts only the current access token; counts refresh calls."""

    def __init__(self, refresh_ok: bool = True) -> None:
        self.valid_token = "fresh-access"
        self.refresh_ok = refresh_ok
        self.refresh_calls = 0
        self.seen_tokens: list[str | None] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/auth/refresh":
            self.refresh_calls += 1
            await asyncio.sleep(0.01)
            if not self.refresh_ok:
                return fail(401, "Invalid or expired refresh token", "TOKEN_REVOKED")
            return ok({"accessToken": self.valid_token, "refreshToken": "fresh-refresh"})

        auth = request.headers.get("Authorization")
        self.seen_tokens.append(auth)
        if auth != f"Bearer {self.valid_token}":
            return fail(401, "Token is invalid or expired", "INVALID_TOKEN")
        return ok({"path": request.url.path})


def make_client(api: FakeApi, **kwargs) -> PlanboardClient:
    return PlanboardClient(
        "http://planboard.test",
        access_token="stale-access",
        refresh_token="stale-refresh",
        transport=httpx.MockTransport(api),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# 1. Envelope handling
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_error_envelope_raises_api_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return fail(404, "Project not found", "PROJECT_NOT_FOUND")

    async with PlanboardClient("http://planboard.test", "token", transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(ApiClientError) as exc_info:
            await api.get_project(uuid.uuid4())

    assert exc_info.value.status_code == 404
    assert exc_info.value.code == "PROJECT_NOT_FOUND"
    assert exc_info.value.message == "Project not found"


@pytest.mark.asyncio
async def test_non_json_response_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    async with PlanboardClient("http://planboard.test", "token", transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(ApiClientError) as exc_info:
            await api.me()

    assert exc_info.value.status_code == 502
    assert exc_info.value.code is None


@pytest.mark.asyncio
async def test_unwraps_data_and_keeps_pagination():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["search"] == "launch"
        return httpx.Response(
            200,
            json={"success": True, "data": [{"id": "p1"}], "pagination": {"page": 1, "total": 1}},
        )

    async with PlanboardClient("http://planboard.test", "token", transport=httpx.MockTransport(handler)) as api:
        envelope = await api.list_projects(search="launch")

    assert envelope["data"] == [{"id": "p1"}]
    assert envelope["pagination"]["total"] == 1


# ---------------------------------------------------------------------------
# 2. Token refresh
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_401_refreshes_once_and_retries():
    api = FakeApi()
    stored: list[tuple[str, str]] = []

    async with make_client(api, on_tokens=lambda a, r: stored.append((a, r))) as client:
        data = await client.me()

    assert data == {"path": "/api/users/me"}
    assert api.refresh_calls == 1
    assert api.seen_tokens == ["Bearer stale-access", "Bearer fresh-access"]
    assert stored == [("fresh-access", "fresh-refresh")]


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_refresh():
    api = FakeApi()

    async with make_client(api) as client:
        results = await asyncio.gather(*(client.get_task(f"t{i}") for i in range(5)))

    assert [r["path"] for r in results] == [f"/api/tasks/t{i}" for i in range(5)]
    assert api.refresh_calls == 1
    assert client.access_token == "fresh-access"
    assert client.refresh_token == "fresh-refresh"


@pytest.mark.asyncio
async def test_failed_refresh_propagates_and_clears_slot():
    api = FakeApi(refresh_ok=False)

    async with make_client(api) as client:
        with pytest.raises(ApiClientError) as exc_info:
            await client.me()
        assert exc_info.value.code == "TOKEN_REVOKED"
        assert client._refresh_task is None

        # A later request tries again rather than reusing the failed attempt
        api.refresh_ok = True
        assert await client.me() == {"path": "/api/users/me"}

    assert api.refresh_calls == 2


@pytest.mark.asyncio
async def test_no_refresh_without_refresh_token():
    api = FakeApi()

    async with PlanboardClient(
        "http://planboard.test", "stale-access", transport=httpx.MockTransport(api)
    ) as client:
        with pytest.raises(ApiClientError) as exc_info:
            await client.me()

    assert exc_info.value.status_code == 401
    assert api.refresh_calls == 0


# ---------------------------------------------------------------------------
# 3. Against the app
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_client_round_trip_against_app(client):
    transport = httpx.ASGITransport(app=app)
    async with PlanboardClient("http://test", transport=transport) as api:
        email = f"cli_{uuid.uuid4().hex[:8]}@example.com"
        await api.register("Cleo Client", email, "password123")
        assert (await api.me())["email"] == email

        project = await api.create_project("From the client")
        task = await api.create_task(project["id"], "Wire it up", priority="HIGH")
        await api.update_task(task["id"], status="DONE")

        stats = await api.project_stats(project["id"])
        assert stats["completedTasks"] == 1
        assert stats["progress"] == 100.0

        listed = await api.list_tasks(project["id"], status="DONE")
        assert [t["title"] for t in listed["data"]] == ["Wire it up"]

        await api.logout()
        assert api.access_token is None
