"""Search endpoints — Query and scroll, returned as the caller-facing envelope."""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from distant.api.deps import get_client, to_http_error
from distant.client.client import AsyncDistantClient
from distant.engine.exceptions import DistantError
from distant.engine.scroll import DEFAULT_KEEP_ALIVE, ScrollCursor
from distant.models.duration import Duration
from distant.models.query import SearchRequest
from distant.models.response import SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class ScrollRequest(BaseModel):
    """Request for the page following a scroll token."""

    scroll_id: str = Field(min_length=1, description="Token from the previous page's metadata")
    keep_alive: Duration = Field(default=DEFAULT_KEEP_ALIVE, description="Keep-alive window to request, e.g. '5m'")
    rank_offset: int = Field(default=0, ge=0, description="Rank of this page's first hit")


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search",
    description=(
        "Run a fuzzy full-text search with highlighting. Set `scroll` (e.g. `\"5m\"`) "
        "to receive a `scroll_id` for fetching further pages via `/v1/scroll`."
    ),
    responses={
        400: {"description": "Engine rejected the query (e.g. result window too large)"},
        422: {"description": "Validation error — invalid request body"},
        502: {"description": "Engine failure or unexpected engine response"},
        503: {"description": "Engine unreachable"},
    },
)
async def search(
    request: SearchRequest,
    client: AsyncDistantClient[Any] = Depends(get_client),
) -> SearchResponse:
    """Execute a search and return the first page."""
    try:
        return await client.search_response(request)
    except DistantError as e:
        logger.warning("Search failed: %s", e)
        raise to_http_error(e) from e


@router.post(
    "/scroll",
    response_model=SearchResponse,
    summary="Next Scroll Page",
    description=(
        "Fetch the page after `scroll_id`. An empty `results` list means the result "
        "set is exhausted. Always use the `scroll_id` from the latest page."
    ),
    responses={
        410: {"description": "Scroll cursor expired; run a new search"},
        400: {"description": "Malformed scroll token"},
    },
)
async def scroll(
    request: ScrollRequest,
    client: AsyncDistantClient[Any] = Depends(get_client),
) -> SearchResponse:
    """Advance a scroll cursor by one page."""
    # Expiry across HTTP calls is judged by the engine
    cursor = ScrollCursor(token=request.scroll_id, keep_alive=request.keep_alive, issued_at=time.monotonic())
    try:
        page = await client.scroll(cursor)
    except DistantError as e:
        logger.warning("Scroll failed: %s", e)
        raise to_http_error(e) from e
    return client.normalizer.to_response(page, rank_offset=request.rank_offset)
