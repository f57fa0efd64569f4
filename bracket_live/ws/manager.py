"""Registry of authenticated sockets on this server instance."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from bracket_live.ws.connection import WebSocketConnection
from bracket_live.ws.messages import MessageEnvelope

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connections and fans server events out to them."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocketConnection] = {}  # connection_id -> Connection

    # =========================================================================
    # Connection Lifecycle
    # =========================================================================

    async def connect(self, conn: WebSocketConnection) -> None:
        self._connections[conn.connection_id] = conn
        logger.info(
            f"Connection registered: user={conn.user_id}, conn={conn.connection_id} "
            f"(total={len(self._connections)})"
        )

    async def disconnect(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is None:
            return
        logger.info(f"Connection removed: conn={connection_id} (total={len(self._connections)})")

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # =========================================================================
    # Messaging
    # =========================================================================

    async def broadcast(self, event_type: Any, data: Any = None) -> int:
        """Send an event to every registered connection.

        Returns:
            Number of connections the event was delivered to
        """
        envelope = MessageEnvelope.create(event_type, data)
        connections = list(self._connections.values())
        if not connections:
            return 0

        results = await asyncio.gather(*(conn.send(envelope) for conn in connections))
        delivered = sum(1 for ok in results if ok)
        logger.debug(f"Broadcast {envelope.type} to {delivered}/{len(connections)} connections")
        return delivered

    async def close_all(self, code: int = 1001, reason: str = "Server shutdown") -> None:
        """Close every connection (shutdown)."""
        connection_count = len(self._connections)
        for conn_id, conn in list(self._connections.items()):
            await conn.close(code, reason)
            await self.disconnect(conn_id)
        logger.info(f"ConnectionManager closed {connection_count} connections")
