"""
Pytest configuration for Planboard backend tests.

The app runs in-process over httpx's ASGI transport against an in-memory
SQLite database. Redis is fakeredis, email tasks are recorders and the
real-time sink records every push.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-planboard-tests-0123456789")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["REQUIRE_EMAIL_VERIFICATION"] = "false"

import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

import fakeredis
import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from planboard.core.database import commit, discard_after_commit, get_db, get_session_factory
from planboard.core.dependencies import get_realtime_sink, get_redis
from planboard.main import app
from planboard.models import Base

PASSWORD = "password123"


def unique_email(prefix: str) -> str:
    """Generate a unique email per test to avoid conflicts."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


# ---------------------------------------------------------------------------
# Recorders
# ---------------------------------------------------------------------------

class TaskRecorder:
    """Stands in for a Celery task; records .delay() kwargs."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def delay(self, **kwargs: Any) -> None:
        self.calls.append(kwargs)


class RecordingSink:
    def __init__(self) -> None:
        self.published: list[tuple[str, dict[str, Any]]] = []
        self.revoked: list[tuple[str, str]] = []

    async def publish(self, path: str, data: dict[str, Any]) -> None:
        self.published.append((path, data))

    async def revoke(self, path: str, user_id: uuid.UUID) -> None:
        self.revoked.append((path, str(user_id)))

    def paths(self) -> list[str]:
        return [path for path, _ in self.published]


@dataclass
class EmailOutbox:
    verification: TaskRecorder = field(default_factory=TaskRecorder)
    password_reset: TaskRecorder = field(default_factory=TaskRecorder)
    notification: TaskRecorder = field(default_factory=TaskRecorder)


@dataclass
class AuthedUser:
    id: str
    email: str
    name: str
    access_token: str
    refresh_token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own BEGIN handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for direct service-level tests and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def outbox(monkeypatch) -> EmailOutbox:
    from planboard.workers import email_tasks

    box = EmailOutbox()
    monkeypatch.setattr(email_tasks, "send_verification_email", box.verification)
    monkeypatch.setattr(email_tasks, "send_password_reset_email", box.password_reset)
    monkeypatch.setattr(email_tasks, "send_notification_email", box.notification)
    return box


@pytest_asyncio.fixture
async def client(session_factory, redis, sink, outbox) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await commit(session)
            except Exception:
                discard_after_commit(session)
                await session.rollback()
                raise

    async def override_get_redis():
        return redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_realtime_sink] = lambda: sink
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def register_user(client):
    async def _register(name: str = "Test User", email: str | None = None, password: str = PASSWORD) -> AuthedUser:
        email = email or unique_email(name.split()[0].lower())
        resp = await client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert resp.status_code == 201, f"Register failed: {resp.text}"
        data = resp.json()["data"]
        return AuthedUser(
            id=data["user"]["id"],
            email=email,
            name=name,
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
        )

    return _register


@pytest.fixture
def create_project(client):
    async def _create(owner: AuthedUser, name: str = "Website Redesign") -> dict:
        resp = await client.post("/api/projects", json={"name": name}, headers=owner.headers)
        assert resp.status_code == 201, f"Create project failed: {resp.text}"
        return resp.json()["data"]

    return _create


@pytest.fixture
def add_member(client):
    async def _add(project_id: str, actor: AuthedUser, user: AuthedUser, role: str = "member") -> httpx.Response:
        return await client.post(
            f"/api/projects/{project_id}/members",
            json={"userId": user.id, "role": role},
            headers=actor.headers,
        )

    return _add


@pytest.fixture
def create_task(client):
    async def _create(project_id: str, actor: AuthedUser, title: str = "Write copy", **fields: Any) -> dict:
        resp = await client.post(
            f"/api/projects/{project_id}/tasks",
            json={"title": title, **fields},
            headers=actor.headers,
        )
        assert resp.status_code == 201, f"Create task failed: {resp.text}"
        return resp.json()["data"]

    return _create


@pytest_asyncio.fixture
async def team(register_user, create_project, add_member, outbox):
    """
    A project with one user per role plus an outsider:
    returns (project, {"owner", "admin", "member", "viewer", "outsider"}).

    Invite emails sent while building the team are cleared from the outbox.
    """
    users = {
        "owner": await register_user("Olivia Owner"),
        "admin": await register_user("Adam Admin"),
        "member": await register_user("Mia Member"),
        "viewer": await register_user("Victor Viewer"),
        "outsider": await register_user("Oscar Outsider"),
    }
    project = await create_project(users["owner"])
    for role in ("admin", "member", "viewer"):
        resp = await add_member(project["id"], users["owner"], users[role], role)
        assert resp.status_code == 201, resp.text
    outbox.notification.calls.clear()
    return project, users


@pytest.fixture
def inbox(client):
    """A user's notifications, without the PROJECT_INVITE rows from joining a project."""
    async def _inbox(user: AuthedUser, **params: Any) -> list[dict]:
        resp = await client.get("/api/notifications", params=params, headers=user.headers)
        assert resp.status_code == 200, resp.text
        return [n for n in resp.json()["data"] if n["type"] != "PROJECT_INVITE"]

    return _inbox
