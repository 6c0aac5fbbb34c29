"""Distant client — Async and sync facades over the engine core.

Usage::

    # Async
    async with AsyncDistantClient.from_settings(Settings(), document_type=SearchDocument) as client:
        result = await client.search(request)
        async for page in client.scroll_all(request):
            ...

    # Sync (wraps the async client internally)
    client = DistantClient(Settings())
    result = client.search(request)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Coroutine, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from urllib.parse import quote

from distant.engine.admin import ClusterHealth, IndexAdmin
from distant.engine.bulk import BulkIndexer
from distant.engine.normalizer import ResultNormalizer
from distant.engine.query import QueryBuilder
from distant.engine.scroll import DEFAULT_KEEP_ALIVE, ScrollCursor, ScrollCursorManager
from distant.engine.transport import HttpxTransport, Transport
from distant.models.index import BulkInputEntry, BulkOutcome, IndexDescriptor
from distant.models.query import SearchRequest
from distant.models.response import SearchResponse
from distant.models.result import DocT, SearchResult

if TYPE_CHECKING:
    from distant.config.settings import Settings

_T = TypeVar("_T")

logger = logging.getLogger(__name__)

FILE_NAME_FIELD = "fileName.keyword"


def search_path(indices: Sequence[str]) -> str:
    """``/_search`` path for one or more indices."""
    return "/" + ",".join(quote(name, safe="") for name in indices) + "/_search"


# ═══════════════════════════════════════════════════════════════════════════════
# Async client
# ═══════════════════════════════════════════════════════════════════════════════


class AsyncDistantClient(Generic[DocT]):
    """Async client wiring the query builder, normalizer, scroll manager,
    bulk indexer, and index administration over one transport.

    All methods may run concurrently; the client holds no per-call state.

    Args:
        transport: Engine transport (shared by every operation).
        document_type: Type hit sources are validated as.
        keep_alive: Scroll keep-alive window.
        query_builder: Custom query builder (e.g. different fuzziness).
    """

    def __init__(
        self,
        transport: Transport,
        *,
        document_type: Any = dict[str, Any],
        keep_alive: str = DEFAULT_KEEP_ALIVE,
        query_builder: QueryBuilder | None = None,
    ) -> None:
        self._transport = transport
        self.query_builder = query_builder or QueryBuilder()
        self.normalizer: ResultNormalizer[DocT] = ResultNormalizer(document_type)
        self.scroller: ScrollCursorManager[DocT] = ScrollCursorManager(
            transport, self.normalizer, keep_alive=keep_alive
        )
        self.bulk = BulkIndexer(transport)
        self.admin = IndexAdmin(transport)

    @classmethod
    def from_settings(cls, settings: Settings, *, document_type: Any = dict[str, Any]) -> AsyncDistantClient[Any]:
        """Build a client with an :class:`HttpxTransport` from settings."""
        return cls(
            HttpxTransport.from_settings(settings.engine),
            document_type=document_type,
            keep_alive=settings.engine.scroll_keep_alive,
        )

    async def __aenter__(self) -> AsyncDistantClient[DocT]:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    # ── Search ──

    async def search(self, request: SearchRequest) -> SearchResult[DocT]:
        """Run a search and return the normalized first page.

        Set ``request.scroll`` to receive a scroll token for further pages.
        """
        logger.info("Searching %s for %r", request.indices, request.query_text)
        response = await self._transport.perform(
            "POST",
            search_path(request.indices),
            body=self.query_builder.build(request),
            params=self.query_builder.build_params(request) or None,
        )
        result = self.normalizer.normalize_response(response)
        logger.debug("Search returned %d of %d hits in %d ms", len(result.hits), result.total.value, result.took)
        return result

    async def search_response(self, request: SearchRequest) -> SearchResponse:
        """Run a search and map it to the caller-facing envelope."""
        result = await self.search(request)
        return self.normalizer.to_response(result, rank_offset=request.offset)

    # ── Scroll ──

    def open_cursor(self, first: SearchResult[Any], keep_alive: str | None = None) -> ScrollCursor:
        """Open a scroll cursor from a scrollable search's first page.

        Pass the ``scroll`` value the search was made with so the cursor
        expires together with the engine context.
        """
        return self.scroller.open_with(first, keep_alive)

    async def scroll(self, cursor: ScrollCursor) -> SearchResult[DocT]:
        """Fetch the page after ``cursor``; an empty page means exhaustion."""
        return await self.scroller.advance(cursor)

    def next_cursor(self, cursor: ScrollCursor, page: SearchResult[Any]) -> ScrollCursor:
        """Cursor for the call after ``page``."""
        return self.scroller.next_cursor(cursor, page)

    async def scroll_all(self, request: SearchRequest) -> AsyncIterator[SearchResult[DocT]]:
        """Yield every page of a search, scrolling until exhaustion.

        The request's page length becomes the scroll batch size.  The
        context is released once the last page has been read.  Without a
        ``scroll`` on the request, the client's keep-alive is used.

        Raises:
            pydantic.ValidationError: If the request has a non-zero offset,
                which scroll contexts cannot honor.
        """
        if not request.scroll:
            request = SearchRequest.model_validate({**request.model_dump(), "scroll": self.scroller.keep_alive})
        first = await self.search(request)
        last_token = first.scroll_id
        async for page in self.scroller.iterate(first, request.scroll):
            last_token = page.scroll_id or last_token
            yield page
        if last_token:
            await self.scroller.clear(last_token)

    # ── Bulk ──

    async def index(
        self,
        index_name: str,
        entries: Sequence[BulkInputEntry[Any]],
        *,
        refresh: str | None = None,
    ) -> BulkOutcome:
        """Index a batch of documents with one bulk request."""
        return await self.bulk.index_batch(index_name, entries, refresh=refresh)

    # ── Lookups and administration ──

    async def check_if_exist(self, indices: Sequence[str], file_name: str, *, field: str = FILE_NAME_FIELD) -> bool:
        """Whether any document's ``field`` equals ``file_name`` exactly."""
        response = await self._transport.perform(
            "POST",
            search_path(indices),
            body=QueryBuilder.build_term(field, file_name, size=0),
        )
        result = self.normalizer.normalize_response(response)
        return result.total.value > 0

    async def list_indices(self) -> list[IndexDescriptor]:
        return await self.admin.list_indices()

    async def remove_index(self, name: str) -> None:
        await self.admin.delete_index(name)

    async def remove_all_indices(self) -> list[str]:
        return await self.admin.delete_all_indices()

    async def check_health(self) -> ClusterHealth:
        return await self.admin.cluster_health()


# ═══════════════════════════════════════════════════════════════════════════════
# Sync client (wraps AsyncDistantClient)
# ═══════════════════════════════════════════════════════════════════════════════


class DistantClient:
    """Synchronous client wrapping :class:`AsyncDistantClient` via ``asyncio.run``.

    Each call opens and closes its own async client, so instances are cheap
    and hold no connections between calls.  Scroll cursors are plain values
    and can be carried across calls.

    Args:
        settings: Application settings (engine section is used).
        document_type: Type hit sources are validated as.
        client_factory: Override for building the async client (tests).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        document_type: Any = dict[str, Any],
        client_factory: Callable[[], AsyncDistantClient[Any]] | None = None,
    ) -> None:
        if client_factory is None:
            if settings is None:
                from distant.config.settings import Settings

                settings = Settings()
            resolved = settings

            def _from_settings() -> AsyncDistantClient[Any]:
                return AsyncDistantClient.from_settings(resolved, document_type=document_type)

            client_factory = _from_settings

        self._client_factory = client_factory

    def _run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        """Run an async coroutine synchronously."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # Already inside an event loop (e.g. Jupyter), run on a worker thread
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                return pool.submit(asyncio.run, coro).result()
        return asyncio.run(coro)

    def _make_client(self) -> AsyncDistantClient[Any]:
        return self._client_factory()

    def search(self, request: SearchRequest) -> SearchResult[Any]:
        """Run a search and return the normalized first page."""

        async def _call() -> SearchResult[Any]:
            async with self._make_client() as c:
                return await c.search(request)

        return self._run(_call())

    def scroll(self, cursor: ScrollCursor) -> SearchResult[Any]:
        """Fetch the page after ``cursor``."""

        async def _call() -> SearchResult[Any]:
            async with self._make_client() as c:
                return await c.scroll(cursor)

        return self._run(_call())

    def scroll_all(self, request: SearchRequest) -> list[SearchResult[Any]]:
        """Collect every page of a search."""

        async def _collect() -> list[SearchResult[Any]]:
            async with self._make_client() as c:
                return [page async for page in c.scroll_all(request)]

        return self._run(_collect())

    def index(self, index_name: str, entries: Sequence[BulkInputEntry[Any]], *, refresh: str | None = None) -> BulkOutcome:
        """Index a batch of documents."""

        async def _call() -> BulkOutcome:
            async with self._make_client() as c:
                return await c.index(index_name, entries, refresh=refresh)

        return self._run(_call())

    def check_if_exist(self, indices: Sequence[str], file_name: str) -> bool:
        async def _call() -> bool:
            async with self._make_client() as c:
                return await c.check_if_exist(indices, file_name)

        return self._run(_call())

    def list_indices(self) -> list[IndexDescriptor]:
        async def _call() -> list[IndexDescriptor]:
            async with self._make_client() as c:
                return await c.list_indices()

        return self._run(_call())

    def remove_index(self, name: str) -> None:
        async def _call() -> None:
            async with self._make_client() as c:
                await c.remove_index(name)

        self._run(_call())

    def remove_all_indices(self) -> list[str]:
        async def _call() -> list[str]:
            async with self._make_client() as c:
                return await c.remove_all_indices()

        return self._run(_call())

    def check_health(self) -> ClusterHealth:
        async def _call() -> ClusterHealth:
            async with self._make_client() as c:
                return await c.check_health()

        return self._run(_call())
