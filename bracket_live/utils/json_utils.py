"""JSON utilities using orjson.

Usage:
    from bracket_live.utils.json_utils import json_dumps, json_loads, fingerprint

    data = json_loads('{"key": "value"}')
    json_str = json_dumps({"key": "value"})

    # Value-based equality for snapshots
    fingerprint(snapshot_a) == fingerprint(snapshot_b)
"""

import hashlib
from datetime import datetime, date
from typing import Any

import orjson
from fastapi.responses import JSONResponse


def _default_serializer(obj: Any) -> Any:
    """Custom serializer for types not natively supported by orjson."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return obj.decode("utf-8")
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_dumps(data: Any) -> str:
    """Serialize data to JSON string using orjson."""
    return orjson.dumps(data, default=_default_serializer, option=orjson.OPT_UTC_Z).decode("utf-8")


def json_dumps_bytes(data: Any) -> bytes:
    """Serialize data to JSON bytes using orjson."""
    return orjson.dumps(data, default=_default_serializer, option=orjson.OPT_UTC_Z)


def json_loads(data: str | bytes) -> Any:
    """Deserialize JSON string/bytes to Python object.

    Raises:
        orjson.JSONDecodeError: (a ValueError subclass) on malformed input
    """
    return orjson.loads(data)


def fingerprint(data: Any) -> str:
    """Compute a value-based fingerprint.

    Two structurally equal values produce the same fingerprint regardless of
    object identity or dict key order.
    """
    encoded = orjson.dumps(
        data,
        default=_default_serializer,
        option=orjson.OPT_UTC_Z | orjson.OPT_SORT_KEYS,
    )
    return hashlib.sha256(encoded).hexdigest()


class ORJSONResponse(JSONResponse):
    """FastAPI response class using orjson for serialization."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        """Render content to JSON bytes."""
        return json_dumps_bytes(content)
