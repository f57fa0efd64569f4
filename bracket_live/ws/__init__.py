"""Realtime channel: client session, event dispatch and server gateway."""

from bracket_live.ws.dispatcher import EventDispatcher
from bracket_live.ws.events import EventType
from bracket_live.ws.messages import MessageEnvelope
from bracket_live.ws.session import ConnectionSession, ConnectionState

__all__ = [
    "EventType",
    "MessageEnvelope",
    "EventDispatcher",
    "ConnectionSession",
    "ConnectionState",
]
