"""Server-side WebSocket connection model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from bracket_live.ws.messages import MessageEnvelope, encode_envelope

logger = logging.getLogger(__name__)


@dataclass
class WebSocketConnection:
    """One authenticated client socket."""

    websocket: WebSocket
    user_id: str
    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    open: bool = True

    async def send(self, envelope: MessageEnvelope) -> bool:
        """Send message to client. Returns False if failed."""
        if not self.open:
            return False
        try:
            await self.websocket.send_text(encode_envelope(envelope))
            return True
        except Exception as e:
            logger.warning(f"Failed to send message to {self.connection_id}: {e}")
            return False

    async def send_event(self, event_type: Any, data: Any = None) -> bool:
        return await self.send(MessageEnvelope.create(event_type, data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection."""
        if not self.open:
            return
        self.open = False
        try:
            await self.websocket.close(code, reason)
        except Exception as e:
            logger.debug(f"Error closing connection {self.connection_id}: {e}")
