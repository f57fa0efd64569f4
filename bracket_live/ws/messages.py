"""Message envelope for the realtime channel.

Every frame in either direction is a JSON object {"type": str, "data": any}.
There are no sequence numbers or acknowledgements at this layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from bracket_live.utils.errors import ParseError
from bracket_live.utils.json_utils import json_dumps, json_loads


@dataclass(frozen=True)
class MessageEnvelope:
    """Standard {type, data} envelope."""

    type: str
    data: Any = None

    @classmethod
    def create(cls, event_type: Enum | str, data: Any = None) -> MessageEnvelope:
        """Factory method to create a new message envelope."""
        type_value = event_type.value if isinstance(event_type, Enum) else event_type
        return cls(type=type_value, data=data)

    @classmethod
    def from_dict(cls, data: Any) -> MessageEnvelope:
        """Parse an incoming frame object.

        Raises:
            ParseError: not an object, or no string type
        """
        if not isinstance(data, dict):
            raise ParseError("Message must be a JSON object", raw=data)
        message_type = data.get("type")
        if not isinstance(message_type, str) or not message_type:
            raise ParseError("Message has no type", raw=data)
        return cls(type=message_type, data=data.get("data"))

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {"type": self.type, "data": self.data}


def decode_envelope(raw: str | bytes) -> MessageEnvelope:
    """Decode a raw text or binary frame.

    Raises:
        ParseError: invalid JSON or not an envelope
    """
    try:
        payload = json_loads(raw)
    except ValueError as e:
        raise ParseError(f"Invalid JSON: {e}", raw=raw)
    return MessageEnvelope.from_dict(payload)


def encode_envelope(envelope: MessageEnvelope) -> str:
    return json_dumps(envelope.to_dict())
