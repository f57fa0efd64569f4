"""Custom exception classes for bracket and channel errors.

Provides structured error handling with error codes and user-friendly messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    FORBIDDEN = "FORBIDDEN"

    # Channel errors
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    INVALID_MESSAGE = "INVALID_MESSAGE"

    # Bracket errors
    INVALID_BRACKET_SIZE = "INVALID_BRACKET_SIZE"
    INVALID_SLOT = "INVALID_SLOT"
    MATCH_NOT_READY = "MATCH_NOT_READY"
    TOURNAMENT_NOT_LOADED = "TOURNAMENT_NOT_LOADED"

    # Persistence errors
    SNAPSHOT_READ_FAILED = "SNAPSHOT_READ_FAILED"
    SNAPSHOT_WRITE_FAILED = "SNAPSHOT_WRITE_FAILED"


class BracketLiveError(Exception):
    """Base exception for bracket-live errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code if isinstance(code, str) else code.value
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class TransportError(BracketLiveError):
    """Raised when the realtime socket closes or errors."""

    def __init__(self, message: str = "Realtime connection lost"):
        super().__init__(
            code=ErrorCode.TRANSPORT_ERROR,
            message=message,
            recoverable=True,
        )


class ParseError(BracketLiveError):
    """Raised when an inbound frame is not a valid envelope."""

    def __init__(self, message: str = "Malformed message", raw: Any = None):
        details = {}
        if raw is not None:
            details["raw"] = str(raw)[:200]
        super().__init__(
            code=ErrorCode.INVALID_MESSAGE,
            message=message,
            details=details,
            recoverable=True,
        )


class ValidationError(BracketLiveError):
    """Raised when a bracket operation is rejected."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.MATCH_NOT_READY,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            recoverable=True,
        )


class InvalidBracketSizeError(ValidationError):
    """Raised when a bracket size outside the supported set is requested."""

    def __init__(self, size: Any, allowed: tuple[int, ...]):
        super().__init__(
            message=f"Invalid bracket size: {size}, allowed: {list(allowed)}",
            code=ErrorCode.INVALID_BRACKET_SIZE,
            details={"size": size, "allowed": list(allowed)},
        )


class PersistenceError(BracketLiveError):
    """Raised when a snapshot cannot be read or written."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SNAPSHOT_WRITE_FAILED,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            recoverable=True,
        )


class AuthorizationError(BracketLiveError):
    """Raised when a non-admin attempts a bracket mutation."""

    def __init__(self, action: str):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=f"Only authorized admins can {action}.",
            details={"action": action},
            recoverable=False,
        )
