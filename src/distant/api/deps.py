"""API dependencies — Dependency injection for FastAPI endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException

from distant.client.client import AsyncDistantClient
from distant.engine.exceptions import (
    CursorExpired,
    DistantError,
    EngineError,
    InvalidCursorError,
    MalformedResponse,
    TransportError,
)

# Global client instance (set during application lifespan)
_client: AsyncDistantClient[Any] | None = None


def set_client(client: AsyncDistantClient[Any] | None) -> None:
    """Set the global client instance (called during app lifespan)."""
    global _client
    _client = client


def get_client() -> AsyncDistantClient[Any]:
    """Get the global engine client.

    Raises:
        RuntimeError: If the client is not initialized.
    """
    if _client is None:
        raise RuntimeError("Distant client not initialized. Is the server running?")
    return _client


def to_http_error(error: DistantError) -> HTTPException:
    """Translate a core exception into an HTTP error for API callers."""
    if isinstance(error, CursorExpired):
        return HTTPException(status_code=410, detail=f"Scroll cursor expired: {error}")
    if isinstance(error, InvalidCursorError):
        return HTTPException(status_code=400, detail=f"Invalid scroll cursor: {error}")
    if isinstance(error, EngineError):
        # Engine-side validation failures are the caller's fault
        status = 400 if error.status_code == 400 else 404 if error.status_code == 404 else 502
        return HTTPException(status_code=status, detail=f"Search engine error: {error}")
    if isinstance(error, MalformedResponse):
        return HTTPException(status_code=502, detail=f"Unexpected search engine response: {error}")
    if isinstance(error, TransportError):
        return HTTPException(status_code=503, detail=f"Search engine unavailable: {error}")
    return HTTPException(status_code=500, detail=str(error))
