"""
Real-time connection manager tests.

Verifies that:
- Publishing reaches sockets subscribed to the path or any parent of it
- Revoking a user's project subscription stops project pushes to that user only
- Sockets that fail to receive are dropped
"""

import uuid

import pytest

from planboard.core.websocket import ConnectionManager


class FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.fail = fail
        self.frames: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)


async def connected(manager: ConnectionManager, user_id: uuid.UUID, *paths: str) -> FakeSocket:
    socket = FakeSocket()
    await manager.connect(socket, user_id)
    for path in paths:
        manager.subscribe(path, socket)
    return socket


@pytest.mark.asyncio
async def test_publish_fans_out_to_parent_paths():
    manager = ConnectionManager()
    project_id = uuid.uuid4()
    watcher = await connected(manager, uuid.uuid4(), f"projects/{project_id}")
    other = await connected(manager, uuid.uuid4(), f"projects/{uuid.uuid4()}")

    await manager.publish(f"projects/{project_id}/activity", {"action": "TASK_CREATED"})

    assert watcher.accepted
    assert watcher.frames == [{"path": f"projects/{project_id}/activity", "data": {"action": "TASK_CREATED"}}]
    assert other.frames == []


@pytest.mark.asyncio
async def test_revoke_drops_only_that_users_project_sockets():
    manager = ConnectionManager()
    project_id = uuid.uuid4()
    removed_id, staying_id = uuid.uuid4(), uuid.uuid4()
    removed = await connected(
        manager, removed_id, f"users/{removed_id}", f"projects/{project_id}", f"projects/{project_id}/activity"
    )
    staying = await connected(manager, staying_id, f"projects/{project_id}")

    await manager.revoke(f"projects/{project_id}", removed_id)

    await manager.publish(f"projects/{project_id}/activity", {"action": "MEMBER_REMOVED"})
    assert removed.frames == []
    assert len(staying.frames) == 1

    # The user's own path is untouched
    await manager.publish(f"users/{removed_id}/notifications", {"type": "PROJECT_INVITE"})
    assert [frame["path"] for frame in removed.frames] == [f"users/{removed_id}/notifications"]
    assert f"projects/{project_id}/activity" not in manager.subscribed_paths


@pytest.mark.asyncio
async def test_failed_send_disconnects_socket():
    manager = ConnectionManager()
    user_id = uuid.uuid4()
    broken = FakeSocket(fail=True)
    await manager.connect(broken, user_id)
    manager.subscribe(f"users/{user_id}", broken)

    await manager.publish(f"users/{user_id}/notifications", {"type": "TASK_ASSIGNED"})

    assert manager.subscribed_paths == []
