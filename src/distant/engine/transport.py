"""Transport boundary — how the core talks to the search engine.

The core never manages connections itself.  It hands a method, a path, and
a JSON (or NDJSON) body to a :class:`Transport` and receives the status
code plus the raw response bytes.  Status interpretation is left to the
caller so that engine rejections stay distinguishable from network failures.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from distant.engine.exceptions import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"


class TransportResponse(BaseModel):
    """Status code and undecoded body of one engine exchange."""

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(description="HTTP status code")
    body: bytes = Field(default=b"", description="Raw response body")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def encode_ndjson(lines: list[Any]) -> bytes:
    """Encode JSON values one per line, with the trailing newline bulk APIs require."""
    return b"".join(json.dumps(line, separators=(",", ":")).encode("utf-8") + b"\n" for line in lines)


class Transport(ABC):
    """Abstract engine transport.

    Implementations must be safe for concurrent use by many coroutines and
    must raise :class:`TransportError` (never return) when the engine could
    not be reached.  Non-success statuses are *returned*, not raised.
    """

    @abstractmethod
    async def perform(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
        ndjson: list[Any] | None = None,
    ) -> TransportResponse:
        """Send one request to the engine.

        Args:
            method: HTTP method.
            path: Request path, e.g. ``/docs/_search``.
            body: JSON-serializable request body.
            params: URL query parameters.
            ndjson: Lines for a newline-delimited JSON body (mutually
                exclusive with ``body``).

        Returns:
            The engine's status code and raw body.

        Raises:
            TransportError: If the request could not be completed.
        """

    async def close(self) -> None:
        """Release underlying connections."""


class HttpxTransport(Transport):
    """Transport backed by a shared ``httpx.AsyncClient``.

    Args:
        hosts: Engine node URLs; the first one is used as the base URL.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        api_key: Optional encoded API key (``Authorization: ApiKey ...``).
        verify_certs: Whether to verify TLS certificates.
        timeout: Request timeout in seconds.
        client: Pre-built ``httpx.AsyncClient`` (e.g. with a mock transport);
            connection options are ignored when given.
    """

    def __init__(
        self,
        hosts: list[str] | None = None,
        *,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        verify_certs: bool = True,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if client is not None:
            self._client = client
            return

        hosts = hosts or ["http://localhost:9200"]
        if not hosts[0]:
            raise ConfigurationError("At least one engine host is required.")
        if len(hosts) > 1:
            logger.info("Multiple engine hosts configured; using %s", hosts[0])

        headers: dict[str, str] = {}
        if api_key:
            headers["Authorization"] = f"ApiKey {api_key}"
        auth = httpx.BasicAuth(username, password) if username and password else None

        self._client = httpx.AsyncClient(
            base_url=hosts[0].rstrip("/"),
            auth=auth,
            headers=headers,
            verify=verify_certs,
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_settings(cls, settings: Any) -> HttpxTransport:
        """Build a transport from :class:`distant.config.settings.EngineSettings`."""
        return cls(
            settings.hosts,
            username=settings.username,
            password=settings.password.get_secret_value() if settings.password else None,
            api_key=settings.api_key.get_secret_value() if settings.api_key else None,
            verify_certs=settings.verify_certs,
            timeout=settings.timeout,
        )

    async def perform(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
        ndjson: list[Any] | None = None,
    ) -> TransportResponse:
        if body is not None and ndjson is not None:
            raise ValueError("body and ndjson are mutually exclusive")

        headers: dict[str, str] = {"Accept": JSON_CONTENT_TYPE}
        content: bytes | None = None
        if ndjson is not None:
            content = encode_ndjson(ndjson)
            headers["Content-Type"] = NDJSON_CONTENT_TYPE
        elif body is not None:
            content = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = JSON_CONTENT_TYPE

        try:
            response = await self._client.request(method, path, content=content, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %d", method, path, response.status_code)
        return TransportResponse(status_code=response.status_code, body=response.content)

    async def close(self) -> None:
        await self._client.aclose()
