"""Client side of the realtime channel.

Connection lifecycle:
IDLE → CONNECTING → CONNECTED
            ↑           ↓ (socket closed or failed)
            └── RECONNECTING (timer: min(base * 2^attempt, cap))

close() moves any state to CLOSED for good.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from bracket_live.utils.async_utils import cancel_task_safe, cancel_timer, create_safe_task
from bracket_live.utils.errors import ParseError, TransportError
from bracket_live.ws.events import AuthRequest, EventType, to_envelope
from bracket_live.ws.messages import MessageEnvelope, decode_envelope, encode_envelope

logger = logging.getLogger(__name__)

DEFAULT_OPEN_TIMEOUT = 10.0


class ConnectionState(str, Enum):
    """Connection states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class Transport(Protocol):
    """The subset of a websockets client connection the session uses."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> Any: ...


Connector = Callable[[str], Awaitable[Transport]]
MessageCallback = Callable[[MessageEnvelope], Any]


@dataclass
class SessionInfo:
    """State of one user's connection attempts."""

    user_id: str
    authenticated: bool = False
    failure_count: int = 0
    last_error: Optional[str] = None
    reconnect_delay: Optional[float] = None


def compute_reconnect_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before reconnect attempt number `attempt` (0-based)."""
    return min(base * (2 ** attempt), cap)


async def websockets_connector(url: str) -> Transport:
    return await websockets.connect(url, open_timeout=DEFAULT_OPEN_TIMEOUT)


class ConnectionSession:
    """Owns one logical connection to the realtime channel.

    Usage:
        session = ConnectionSession(url, user_id, on_message=dispatcher.dispatch_envelope)
        await session.connect()
        ...
        await session.close()
    """

    def __init__(
        self,
        url: str,
        user_id: str,
        on_message: MessageCallback,
        *,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        connector: Connector | None = None,
    ):
        self.url = url
        self.info = SessionInfo(user_id=user_id)
        self._on_message = on_message
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._connector = connector or websockets_connector

        self._state = ConnectionState.IDLE
        self._ws: Transport | None = None
        self._attempt = 0
        self._closed = False

        # Deferred work, all cancelled by close()
        self._connection_task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._send_tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def attempt(self) -> int:
        return self._attempt

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Start connecting in the background. No-op once started or closed."""
        if self._closed or self._state != ConnectionState.IDLE:
            return
        self._start_attempt()

    async def close(self) -> None:
        """Tear down: cancel pending reconnect and close the socket once.

        Safe to call repeatedly and while a connection attempt is in flight.
        """
        if self._closed:
            return
        self._closed = True
        self._state = ConnectionState.CLOSED
        self.info.authenticated = False

        cancel_timer(self._reconnect_handle)
        self._reconnect_handle = None

        ws, self._ws = self._ws, None

        await cancel_task_safe(self._connection_task)
        self._connection_task = None

        for task in list(self._send_tasks):
            task.cancel()
        self._send_tasks.clear()

        if ws is not None:
            await self._close_transport(ws)

        logger.info(f"Realtime session closed (user={self.info.user_id})")

    async def __aenter__(self) -> "ConnectionSession":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Outbound
    # =========================================================================

    def send(self, event_type: EventType | str, data: Any = None) -> bool:
        """Send a frame if the socket is open.

        Delivery is best-effort and at-most-once: with no open socket the
        message is dropped, never queued.

        Returns:
            True if the frame was handed to the socket
        """
        envelope = MessageEnvelope.create(event_type, data)
        if not self.is_connected or self._ws is None:
            logger.warning(f"Realtime channel is not connected. Message not sent: {envelope.type}")
            return False

        task = create_safe_task(
            self._ws.send(encode_envelope(envelope)),
            name=f"ws_send:{envelope.type}",
        )
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
        return True

    # =========================================================================
    # Connection cycle
    # =========================================================================

    def _start_attempt(self) -> None:
        self._reconnect_handle = None
        if self._closed:
            return
        self._state = (
            ConnectionState.RECONNECTING if self._attempt > 0 else ConnectionState.CONNECTING
        )
        self._connection_task = create_safe_task(
            self._run_connection(),
            name=f"ws_connection:{self.info.user_id}",
        )

    async def _run_connection(self) -> None:
        try:
            ws = await self._connector(self.url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self._handle_failure(e)
            return

        if self._closed:
            await self._close_transport(ws)
            return

        self._ws = ws
        try:
            # Auth goes out before anything else can be sent
            await ws.send(encode_envelope(to_envelope(AuthRequest(user_id=self.info.user_id))))
        except (ConnectionClosed, OSError) as e:
            self._ws = None
            self._handle_failure(e)
            return

        self._state = ConnectionState.CONNECTED
        self._attempt = 0
        self.info.failure_count = 0
        self.info.last_error = None
        logger.info(f"Realtime channel connected: {self.url} (user={self.info.user_id})")

        error: BaseException | None = None
        try:
            async for raw in ws:
                self._handle_frame(raw)
        except ConnectionClosed as e:
            error = e
        except OSError as e:
            error = e
        finally:
            if self._ws is ws:
                self._ws = None

        if not self._closed:
            self._handle_failure(error or TransportError("Connection closed by server"))

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            envelope = decode_envelope(raw)
        except ParseError as e:
            logger.error(f"Failed to parse realtime message: {e.message}")
            return

        if envelope.type == EventType.AUTH_SUCCESS.value:
            self.info.authenticated = True

        try:
            self._on_message(envelope)
        except Exception:
            logger.exception(f"Message callback failed for {envelope.type}")

    def _handle_failure(self, exc: BaseException) -> None:
        """Record a failed cycle and schedule the next attempt."""
        self.info.authenticated = False
        if self._closed:
            return

        delay = compute_reconnect_delay(self._attempt, self._base_delay, self._max_delay)
        self._attempt += 1
        self.info.failure_count = self._attempt
        self.info.last_error = str(exc) or type(exc).__name__
        self.info.reconnect_delay = delay
        self._state = ConnectionState.RECONNECTING

        logger.warning(
            f"Realtime channel lost ({self.info.last_error}); "
            f"reconnecting in {delay:.2f}s (attempt {self._attempt})"
        )

        cancel_timer(self._reconnect_handle)
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._start_attempt)

    @staticmethod
    async def _close_transport(ws: Transport) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error closing realtime socket: {e}")
