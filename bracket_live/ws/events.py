"""Realtime channel event definitions.

Inbound envelopes are parsed into a closed set of event classes. Types the
client does not know become UnknownEvent rather than an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from bracket_live.tournament.snapshot import TournamentSnapshot
from bracket_live.utils.errors import ParseError
from bracket_live.ws.messages import MessageEnvelope


class EventType(str, Enum):
    """All channel event types."""

    # System events
    AUTH = "auth"
    AUTH_SUCCESS = "auth:success"
    ERROR = "error"

    # Tournament events
    TOURNAMENT_UPDATED = "tournament:updated"
    TOURNAMENT_RESET = "tournament:reset"


CLIENT_TO_SERVER_EVENTS = frozenset([
    EventType.AUTH,
])

SERVER_TO_CLIENT_EVENTS = frozenset([
    EventType.AUTH_SUCCESS,
    EventType.ERROR,
    EventType.TOURNAMENT_UPDATED,
    EventType.TOURNAMENT_RESET,
])


@dataclass(frozen=True)
class AuthRequest:
    """Client's first frame on a new connection."""

    event_type: ClassVar[EventType] = EventType.AUTH

    user_id: str

    def to_data(self) -> dict[str, Any]:
        return {"userId": self.user_id}


@dataclass(frozen=True)
class AuthSuccess:
    event_type: ClassVar[EventType] = EventType.AUTH_SUCCESS

    user_id: str

    def to_data(self) -> dict[str, Any]:
        return {"userId": self.user_id}


@dataclass(frozen=True)
class ErrorEvent:
    event_type: ClassVar[EventType] = EventType.ERROR

    error: str

    def to_data(self) -> dict[str, Any]:
        return {"error": self.error}


@dataclass(frozen=True)
class TournamentUpdated:
    """A new authoritative snapshot was persisted."""

    event_type: ClassVar[EventType] = EventType.TOURNAMENT_UPDATED

    snapshot: TournamentSnapshot

    def to_data(self) -> dict[str, Any]:
        return self.snapshot.to_dict()


@dataclass(frozen=True)
class TournamentReset:
    event_type: ClassVar[EventType] = EventType.TOURNAMENT_RESET

    def to_data(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class UnknownEvent:
    """An event type this client does not recognize."""

    type: str
    data: Any = None


KnownEvent = Union[AuthRequest, AuthSuccess, ErrorEvent, TournamentUpdated, TournamentReset]
Event = Union[KnownEvent, UnknownEvent]


def _require_dict(envelope: MessageEnvelope) -> dict[str, Any]:
    if not isinstance(envelope.data, dict):
        raise ParseError(f"Invalid {envelope.type} data", raw=envelope.data)
    return envelope.data


def _require_str(data: dict[str, Any], key: str, envelope: MessageEnvelope) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ParseError(f"Invalid {envelope.type} data: missing {key}", raw=data)
    return value


def parse_event(envelope: MessageEnvelope) -> Event:
    """Turn an envelope into a typed event.

    Raises:
        ParseError: a known event type with a malformed payload
    """
    try:
        event_type = EventType(envelope.type)
    except ValueError:
        return UnknownEvent(type=envelope.type, data=envelope.data)

    if event_type == EventType.AUTH:
        return AuthRequest(user_id=_require_str(_require_dict(envelope), "userId", envelope))

    if event_type == EventType.AUTH_SUCCESS:
        return AuthSuccess(user_id=_require_str(_require_dict(envelope), "userId", envelope))

    if event_type == EventType.ERROR:
        data = envelope.data if isinstance(envelope.data, dict) else {}
        return ErrorEvent(error=str(data.get("error", "Unknown error")))

    if event_type == EventType.TOURNAMENT_UPDATED:
        try:
            snapshot = TournamentSnapshot.from_dict(_require_dict(envelope))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ParseError(f"Invalid tournament snapshot: {e}", raw=envelope.data)
        return TournamentUpdated(snapshot=snapshot)

    return TournamentReset()


def to_envelope(event: KnownEvent) -> MessageEnvelope:
    """Wrap a known event for sending."""
    return MessageEnvelope.create(event.event_type, event.to_data())
