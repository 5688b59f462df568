"""
Real-time sink.

In-memory registry of WebSocket subscriptions keyed by path
(e.g. users/{id}/notifications, projects/{id}/activity). Single server only.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Protocol
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RealtimeSink(Protocol):
    """Anything that can push a JSON payload to the subscribers of a path."""

    async def publish(self, path: str, data: dict[str, Any]) -> None: ...

    async def revoke(self, path: str, user_id: UUID) -> None: ...


def _path_prefixes(path: str) -> list[str]:
    """'projects/a/tasks/b' -> ['projects', 'projects/a', 'projects/a/tasks', 'projects/a/tasks/b']"""
    parts = [p for p in path.strip("/").split("/") if p]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


class ConnectionManager:
    """
    Maps a subscription path to a set of WebSockets.

    A socket subscribed to `projects/{id}` receives everything published
    below that path.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, set[WebSocket]] = defaultdict(set)
        self._owners: dict[WebSocket, UUID] = {}

    async def connect(self, websocket: WebSocket, user_id: UUID) -> None:
        await websocket.accept()
        self._owners[websocket] = user_id

    def subscribe(self, path: str, websocket: WebSocket) -> None:
        self._subscriptions[path.strip("/")].add(websocket)
        logger.info("WebSocket subscribed: path=%s", path)

    def unsubscribe(self, path: str, websocket: WebSocket) -> None:
        sockets = self._subscriptions.get(path.strip("/"))
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._subscriptions[path.strip("/")]

    def disconnect(self, websocket: WebSocket) -> None:
        self._owners.pop(websocket, None)
        for path in list(self._subscriptions):
            sockets = self._subscriptions[path]
            sockets.discard(websocket)
            if not sockets:
                del self._subscriptions[path]

    async def revoke(self, path: str, user_id: UUID) -> None:
        """Drop the user's sockets from the path and every path below it."""
        root = path.strip("/")
        for key in list(self._subscriptions):
            if key != root and not key.startswith(root + "/"):
                continue
            sockets = self._subscriptions[key]
            revoked = {ws for ws in sockets if self._owners.get(ws) == user_id}
            if not revoked:
                continue
            sockets -= revoked
            if not sockets:
                del self._subscriptions[key]
            logger.info("WebSocket subscription revoked: path=%s user_id=%s", key, user_id)

    async def publish(self, path: str, data: dict[str, Any]) -> None:
        """
        Send JSON payload to every socket subscribed to the path or a parent of it.
        Silently removes stale connections on any send error.
        """
        targets: set[WebSocket] = set()
        for prefix in _path_prefixes(path):
            targets |= self._subscriptions.get(prefix, set())

        for websocket in targets:
            try:
                await websocket.send_json({"path": path, "data": data})
            except Exception as exc:
                logger.warning("Failed to push to path=%s, removing connection: %s", path, exc)
                self.disconnect(websocket)

    @property
    def subscribed_paths(self) -> list[str]:
        return list(self._subscriptions.keys())


async def push_best_effort(sink: RealtimeSink | None, path: str, data: dict[str, Any]) -> None:
    """Publish if a sink is configured; delivery failures never reach the caller."""
    if sink is None:
        return
    try:
        await sink.publish(path, data)
    except Exception:
        logger.exception("Real-time update failed: path=%s", path)


async def revoke_best_effort(sink: RealtimeSink | None, path: str, user_id: UUID) -> None:
    if sink is None:
        return
    try:
        await sink.revoke(path, user_id)
    except Exception:
        logger.exception("Subscription revoke failed: path=%s user_id=%s", path, user_id)


# Module-level singleton, imported by dependencies and the websocket router
manager = ConnectionManager()
