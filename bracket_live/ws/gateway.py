"""WebSocket gateway endpoint.

Connection flow:
1. Client connects and the server accepts
2. Client sends {"type": "auth", "data": {"userId": ...}} within the auth timeout
3. Server replies auth:success and registers the connection
4. Server pushes tournament events; unknown client events get an error reply
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from bracket_live.config import Settings
from bracket_live.utils.errors import ParseError
from bracket_live.ws.connection import WebSocketConnection
from bracket_live.ws.events import (
    AuthRequest,
    AuthSuccess,
    ErrorEvent,
    EventType,
    parse_event,
    to_envelope,
)
from bracket_live.ws.manager import ConnectionManager
from bracket_live.ws.messages import decode_envelope, encode_envelope

logger = logging.getLogger(__name__)
router = APIRouter(tags=["WebSocket"])

AUTH_FAILED_CLOSE_CODE = 4001


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_text(encode_envelope(to_envelope(ErrorEvent(error=message))))


async def _wait_for_auth(websocket: WebSocket) -> str:
    """Read frames until a valid auth frame arrives.

    Frames before auth are answered with an error and otherwise ignored.
    """
    while True:
        raw = await websocket.receive_text()
        try:
            envelope = decode_envelope(raw)
        except ParseError:
            await _send_error(websocket, "Invalid message format")
            continue

        if envelope.type != EventType.AUTH.value:
            await _send_error(websocket, "Not authenticated")
            continue

        try:
            event = parse_event(envelope)
        except ParseError:
            await _send_error(websocket, "Invalid auth data")
            continue

        if isinstance(event, AuthRequest) and event.user_id.strip():
            return event.user_id
        await _send_error(websocket, "Invalid auth data")


async def _handle_client_frame(conn: WebSocketConnection, raw: str) -> None:
    try:
        envelope = decode_envelope(raw)
    except ParseError as e:
        logger.warning(f"Invalid message format from {conn.connection_id}: {e.message}")
        await conn.send_event(EventType.ERROR, {"error": "Invalid message format"})
        return

    if envelope.type == EventType.AUTH.value:
        try:
            event = parse_event(envelope)
        except ParseError:
            await conn.send_event(EventType.ERROR, {"error": "Invalid auth data"})
            return
        # Re-auth on an open socket keeps the first identity
        await conn.send(to_envelope(AuthSuccess(user_id=conn.user_id)))
        if isinstance(event, AuthRequest) and event.user_id != conn.user_id:
            logger.warning(
                f"Ignoring identity change on {conn.connection_id}: "
                f"{conn.user_id} -> {event.user_id}"
            )
        return

    await conn.send_event(EventType.ERROR, {"error": "Unknown message type"})


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Realtime channel endpoint."""
    settings: Settings = websocket.app.state.settings
    manager: ConnectionManager = websocket.app.state.connection_manager

    await websocket.accept()

    try:
        user_id = await asyncio.wait_for(
            _wait_for_auth(websocket),
            timeout=settings.auth_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("WebSocket auth timeout - no auth message received")
        await websocket.close(AUTH_FAILED_CLOSE_CODE, "Authentication timeout")
        return
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected before auth")
        return

    conn = WebSocketConnection(
        websocket=websocket,
        user_id=user_id,
        connection_id=str(uuid4()),
    )
    await manager.connect(conn)
    await conn.send(to_envelope(AuthSuccess(user_id=user_id)))
    logger.info(f"WebSocket connected: user={user_id}, conn={conn.connection_id}")

    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_client_frame(conn, raw)

    except WebSocketDisconnect as e:
        logger.info(
            f"WebSocket disconnected: user={user_id}, conn={conn.connection_id}, code={e.code}"
        )

    except Exception as e:
        logger.exception(f"WebSocket error: {e}")

    finally:
        conn.open = False
        await manager.disconnect(conn.connection_id)


@router.get("/ws/stats")
async def websocket_stats(request: Request) -> dict[str, Any]:
    """Connection statistics for monitoring."""
    manager: ConnectionManager = request.app.state.connection_manager
    return {
        "connections": manager.connection_count,
        "status": "running",
    }
