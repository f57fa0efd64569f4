"""WebSocket test fixtures and utilities."""

from __future__ import annotations

import asyncio
from typing import Any

from bracket_live.utils.json_utils import json_dumps, json_loads

_CLOSED = object()


# =============================================================================
# Mock Classes
# =============================================================================


class FakeTransport:
    """Client socket double: records sends, replays queued inbound frames."""

    def __init__(self):
        self.sent: list[str] = []
        self.close_calls = 0
        self.closed = False
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.closed:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self._incoming.put_nowait(_CLOSED)

    def feed(self, frame: Any) -> None:
        """Queue an inbound frame; dicts are JSON encoded."""
        self._incoming.put_nowait(json_dumps(frame) if isinstance(frame, dict) else frame)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.closed = True
        self._incoming.put_nowait(_CLOSED)

    def sent_messages(self) -> list[dict[str, Any]]:
        return [json_loads(raw) for raw in self.sent]

    def __aiter__(self) -> FakeTransport:
        return self

    async def __anext__(self) -> Any:
        item = await self._incoming.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Hands out queued outcomes: a FakeTransport, or an exception to raise."""

    def __init__(self, *outcomes: Any):
        self._outcomes = list(outcomes)
        self.urls: list[str] = []
        self.transports: list[FakeTransport] = []

    @property
    def calls(self) -> int:
        return len(self.urls)

    async def __call__(self, url: str) -> FakeTransport:
        self.urls.append(url)
        outcome = self._outcomes.pop(0) if self._outcomes else FakeTransport()
        if isinstance(outcome, BaseException):
            raise outcome
        self.transports.append(outcome)
        return outcome


class BlockingConnector:
    """Connector whose attempt never completes until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def __call__(self, url: str) -> FakeTransport:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        raise AssertionError("unreachable")


class MockWebSocket:
    """Server-side WebSocket double for connection and manager tests."""

    def __init__(self, fail_send: bool = False):
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.fail_send = fail_send
        self.sent_messages: list[dict[str, Any]] = []

    async def send_text(self, data: str) -> None:
        if self.closed or self.fail_send:
            raise RuntimeError("WebSocket closed")
        self.sent_messages.append(json_loads(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self.close_reason = reason
