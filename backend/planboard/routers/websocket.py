"""
WebSocket endpoint.

Real-time updates for authenticated users. Every socket is subscribed to
its user's path on connect; project paths are added on request once
membership has been checked.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planboard.core.database import get_session_factory
from planboard.core.dependencies import authenticate_token, get_redis
from planboard.core.exceptions import AppError
from planboard.core.websocket import manager
from planboard.services.authorization import resolve_role

logger = logging.getLogger(__name__)

router = APIRouter()

# Close code for a failed handshake
WS_UNAUTHORIZED = 4001


def user_path(user_id: UUID) -> str:
    return f"users/{user_id}"


async def _can_subscribe(
    session_factory: async_sessionmaker[AsyncSession], user_id: UUID, path: str
) -> bool:
    """Own user path always; project paths only for members."""
    parts = path.strip("/").split("/")
    if parts[0] == "users":
        return len(parts) >= 2 and parts[1] == str(user_id)
    if parts[0] != "projects" or len(parts) < 2:
        return False
    try:
        project_id = UUID(parts[1])
    except ValueError:
        return False

    async with session_factory() as session:
        try:
            await resolve_role(session, project_id, user_id)
        except AppError:
            return False
    return True


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(..., description="JWT access token"),
    redis: aioredis.Redis = Depends(get_redis),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    """
    Connect: WS /api/ws?token={access_token}

    Client messages:
        {"action": "subscribe", "path": "projects/{id}"}
        {"action": "unsubscribe", "path": "projects/{id}"}

    Server frames are {"path": ..., "data": ...} for published updates and
    {"type": ...} for protocol replies.
    """
    async with session_factory() as session:
        try:
            user = await authenticate_token(token, session, redis)
        except AppError:
            await websocket.close(code=WS_UNAUTHORIZED)
            return

    await manager.connect(websocket, user.id)
    manager.subscribe(user_path(user.id), websocket)

    try:
        await websocket.send_json({"type": "connected", "userId": str(user.id)})

        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                await websocket.send_json({"type": "error", "code": "INVALID_MESSAGE"})
                continue
            action = message.get("action")
            path = str(message.get("path") or "").strip("/")

            if action == "subscribe":
                if path and await _can_subscribe(session_factory, user.id, path):
                    manager.subscribe(path, websocket)
                    await websocket.send_json({"type": "subscribed", "path": path})
                else:
                    await websocket.send_json({"type": "error", "path": path, "code": "SUBSCRIBE_DENIED"})
            elif action == "unsubscribe":
                manager.unsubscribe(path, websocket)
                await websocket.send_json({"type": "unsubscribed", "path": path})
            else:
                await websocket.send_json({"type": "error", "code": "UNKNOWN_ACTION"})

    except WebSocketDisconnect:
        manager.disconnect(websocket)
    except Exception as exc:
        logger.warning("WebSocket error for user_id=%s: %s", user.id, exc)
        manager.disconnect(websocket)
