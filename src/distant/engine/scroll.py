"""Scroll cursor manager — Multi-page retrieval over a point-in-time snapshot.

Lifecycle of a cursor::

    (unopened) --open_with()--> OPEN --advance()/next_cursor()--> OPEN ...
                                  |                                  |
                                  +------ empty page --------> EXHAUSTED

Any state can fail with :class:`InvalidCursorError` (missing or malformed
token) or :class:`CursorExpired` (keep-alive lapsed).  Cursors are immutable
values; the manager keeps no per-cursor state, so a cursor must not be
advanced from two places at once.  Abandoned cursors need no cleanup: the
engine reclaims them when the keep-alive window elapses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any, Generic

from pydantic import BaseModel, ConfigDict, Field

from distant.engine.exceptions import CursorExpired, InvalidCursorError
from distant.engine.normalizer import ResultNormalizer, engine_error
from distant.engine.query import QueryBuilder
from distant.engine.transport import Transport
from distant.models.duration import Duration, parse_duration
from distant.models.result import DocT, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_KEEP_ALIVE = "5m"
SCROLL_PATH = "/_search/scroll"

_MISSING_CONTEXT = "search_context_missing_exception"


class CursorState(str, Enum):
    OPEN = "open"
    EXHAUSTED = "exhausted"


class ScrollCursor(BaseModel):
    """An opaque scroll token and the window during which it stays valid."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1, description="Scroll id issued by the engine")
    keep_alive: Duration = Field(default=DEFAULT_KEEP_ALIVE, description="Keep-alive window, e.g. '5m'")
    state: CursorState = Field(default=CursorState.OPEN)
    page: int = Field(default=0, ge=0, description="Index of the page this token was issued with")
    issued_at: float = Field(description="Monotonic clock reading when the token was issued")

    @property
    def expires_at(self) -> float:
        return self.issued_at + parse_duration(self.keep_alive)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ScrollCursorManager(Generic[DocT]):
    """Opens and advances scroll cursors over a transport.

    Args:
        transport: Engine transport.
        normalizer: Normalizer for the pages (fixes the document type).
        keep_alive: Keep-alive window requested on every advance.
        clock: Monotonic clock, in seconds.
    """

    def __init__(
        self,
        transport: Transport,
        normalizer: ResultNormalizer[DocT],
        *,
        keep_alive: str = DEFAULT_KEEP_ALIVE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        parse_duration(keep_alive)
        self._transport = transport
        self._normalizer = normalizer
        self._keep_alive = keep_alive
        self._clock = clock

    @property
    def keep_alive(self) -> str:
        return self._keep_alive

    def open_with(self, first: SearchResult[Any], keep_alive: str | None = None) -> ScrollCursor:
        """Open a cursor from the first page of a scrollable search.

        ``keep_alive`` should be the window the search itself requested
        (``SearchRequest.scroll``); the manager's own window is used when
        it is omitted.

        Raises:
            InvalidCursorError: If the result carries no scroll token, i.e.
                the search did not request a scrollable context.
        """
        if not first.scroll_id:
            raise InvalidCursorError("Result carries no scroll token; search with a 'scroll' keep-alive first.")
        return ScrollCursor(
            token=first.scroll_id,
            keep_alive=keep_alive or self._keep_alive,
            state=CursorState.EXHAUSTED if first.is_empty else CursorState.OPEN,
            page=0,
            issued_at=self._clock(),
        )

    async def advance(self, cursor: ScrollCursor) -> SearchResult[DocT]:
        """Fetch the page following ``cursor``.

        The returned page carries the token for the *next* call; pass it
        through :meth:`next_cursor` rather than reusing ``cursor``.  An empty
        page means the result set is exhausted.

        Raises:
            InvalidCursorError: If the cursor is exhausted or its token is
                rejected as malformed.
            CursorExpired: If the keep-alive window has lapsed.
            EngineError: On any other engine failure.
            TransportError: If the engine cannot be reached.
        """
        if cursor.state is CursorState.EXHAUSTED:
            raise InvalidCursorError("Cursor is exhausted; open a new one with a fresh search.")
        if cursor.is_expired(self._clock()):
            raise CursorExpired(f"Scroll cursor expired after its {cursor.keep_alive} keep-alive window.")

        response = await self._transport.perform(
            "POST",
            SCROLL_PATH,
            body=QueryBuilder.build_scroll(cursor.keep_alive, cursor.token),
        )
        if not response.ok:
            error = engine_error(response.status_code, response.body, operation="scroll")
            if response.status_code == 404 or _MISSING_CONTEXT in (error.error_type, *error.root_causes):
                raise CursorExpired(f"Scroll context is no longer available: {error.reason or error}") from error
            if response.status_code == 400 and "scroll" in (error.reason or "").lower():
                raise InvalidCursorError(f"Scroll token rejected: {error.reason}") from error
            raise error

        page = self._normalizer.normalize_response(response)
        logger.debug("Scroll page %d: %d hits", cursor.page + 1, len(page.hits))
        return page

    def next_cursor(self, cursor: ScrollCursor, page: SearchResult[Any]) -> ScrollCursor:
        """Derive the cursor for the call after ``page``.

        Tokens may change between calls, so the token is always taken from
        the latest page.
        """
        if page.is_empty:
            return cursor.model_copy(
                update={
                    "token": page.scroll_id or cursor.token,
                    "state": CursorState.EXHAUSTED,
                    "page": cursor.page + 1,
                }
            )
        if not page.scroll_id:
            raise InvalidCursorError("Scroll page carries no token for the next call.")
        return ScrollCursor(
            token=page.scroll_id,
            keep_alive=cursor.keep_alive,
            page=cursor.page + 1,
            issued_at=self._clock(),
        )

    async def iterate(
        self, first: SearchResult[DocT], keep_alive: str | None = None
    ) -> AsyncIterator[SearchResult[DocT]]:
        """Yield ``first`` and every following non-empty page until exhaustion."""
        if first.is_empty:
            return
        yield first

        cursor = self.open_with(first, keep_alive)
        while cursor.state is CursorState.OPEN:
            page = await self.advance(cursor)
            cursor = self.next_cursor(cursor, page)
            if page.is_empty:
                break
            yield page

    async def clear(self, token: str) -> None:
        """Release a scroll context ahead of its keep-alive window.

        Optional: an already-released or expired context is not an error.
        """
        response = await self._transport.perform("DELETE", SCROLL_PATH, body={"scroll_id": [token]})
        if response.status_code == 404:
            logger.debug("Scroll context already released")
            return
        if not response.ok:
            raise engine_error(response.status_code, response.body, operation="clear scroll")
