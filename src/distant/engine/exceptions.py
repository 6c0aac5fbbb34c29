"""Engine-facing exceptions.

Every failure surfaced by the core is one of these distinct kinds so
callers can tell a network failure from an engine rejection, a contract
mismatch, or a lapsed scroll cursor.
"""

from __future__ import annotations


class DistantError(Exception):
    """Base exception for all distant errors."""


class TransportError(DistantError):
    """Raised when the engine cannot be reached (connection, timeout, protocol)."""


class EngineError(DistantError):
    """Raised when the engine answers with a non-success status code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_type: str | None = None,
        reason: str | None = None,
        root_causes: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.reason = reason
        self.root_causes = root_causes


class MalformedResponse(DistantError):
    """Raised when a response body is not JSON or lacks required fields."""


class InvalidCursorError(DistantError):
    """Raised when a scroll cursor is missing, malformed, or already exhausted."""


class CursorExpired(InvalidCursorError):
    """Raised when a scroll cursor's keep-alive window has lapsed."""


class ConfigurationError(DistantError):
    """Raised when client configuration is invalid."""
