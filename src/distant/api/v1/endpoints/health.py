"""Health check endpoint — Service and engine health."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from distant import __version__
from distant.api.deps import get_client
from distant.client.client import AsyncDistantClient
from distant.engine.exceptions import DistantError

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_MAP = {"green": "healthy", "yellow": "degraded", "red": "unhealthy"}


class HealthResponse(BaseModel):
    """Service health check response."""

    status: str = Field(description="healthy, degraded, or unhealthy")
    version: str = Field(description="Distant server version")
    service: str = Field(description="Service name ('distant')")
    engine_status: str | None = Field(default=None, description="Raw cluster status (green/yellow/red)")
    cluster_name: str | None = Field(default=None, description="Engine cluster name")
    message: str | None = Field(default=None, description="Diagnostic message when unhealthy")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Report service health together with the search engine's cluster health.",
)
async def health_check(client: AsyncDistantClient[Any] = Depends(get_client)) -> HealthResponse:
    """Health check including the engine's cluster status."""
    try:
        cluster = await client.check_health()
    except DistantError as e:
        logger.warning("Engine health check failed: %s", e)
        return HealthResponse(status="unhealthy", version=__version__, service="distant", message=str(e))

    return HealthResponse(
        status=_STATUS_MAP.get(cluster.status, "unhealthy"),
        version=__version__,
        service="distant",
        engine_status=cluster.status,
        cluster_name=cluster.cluster_name,
    )
