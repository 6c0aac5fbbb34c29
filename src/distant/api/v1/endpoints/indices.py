"""Index endpoints — Bulk ingestion, listing, deletion, and existence checks."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from distant.api.deps import get_client, to_http_error
from distant.client.client import AsyncDistantClient
from distant.engine.exceptions import DistantError
from distant.models.index import BulkInputEntry, BulkOutcome, IndexDescriptor

logger = logging.getLogger(__name__)

router = APIRouter()


class ExistsResponse(BaseModel):
    """Result of a file-name existence check."""

    file_name: str = Field(description="File name that was looked up")
    exists: bool = Field(description="True when at least one document matches")


@router.get(
    "/indices",
    response_model=list[IndexDescriptor],
    response_model_by_alias=False,
    summary="List Indices",
)
async def list_indices(client: AsyncDistantClient[Any] = Depends(get_client)) -> list[IndexDescriptor]:
    """List every index with health, document counts, and size."""
    try:
        return await client.list_indices()
    except DistantError as e:
        raise to_http_error(e) from e


@router.delete("/indices/{name}", status_code=204, summary="Delete Index")
async def delete_index(name: str, client: AsyncDistantClient[Any] = Depends(get_client)) -> None:
    """Delete one index."""
    try:
        await client.remove_index(name)
    except DistantError as e:
        raise to_http_error(e) from e


@router.post(
    "/indices/{name}/documents",
    response_model=BulkOutcome,
    summary="Bulk Index Documents",
    description=(
        "Index a batch of documents with one bulk request. Per-item failures are "
        "reported in `items` and are not retried."
    ),
)
async def index_documents(
    name: str,
    entries: list[BulkInputEntry[dict[str, Any]]],
    refresh: str | None = Query(default=None, description="'true' or 'wait_for' to make documents searchable"),
    client: AsyncDistantClient[Any] = Depends(get_client),
) -> BulkOutcome:
    """Bulk-index documents into ``name``."""
    try:
        return await client.index(name, entries, refresh=refresh)
    except DistantError as e:
        logger.warning("Bulk indexing into %s failed: %s", name, e)
        raise to_http_error(e) from e


@router.get("/exists", response_model=ExistsResponse, summary="File Exists")
async def file_exists(
    file_name: str = Query(min_length=1, description="Exact file name to look up"),
    index: list[str] = Query(description="Indices to search"),
    client: AsyncDistantClient[Any] = Depends(get_client),
) -> ExistsResponse:
    """Check whether any document was indexed from ``file_name``."""
    try:
        exists = await client.check_if_exist(index, file_name)
    except DistantError as e:
        raise to_http_error(e) from e
    return ExistsResponse(file_name=file_name, exists=exists)
