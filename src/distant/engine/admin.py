"""Index administration — Listing, deleting, and health of indices.

Thin wrappers over the engine's ``_cat`` and index APIs.  They share the
core's error taxonomy but are otherwise independent of search and bulk
operations.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from distant.engine.exceptions import MalformedResponse
from distant.engine.normalizer import decode_json, raise_for_status
from distant.engine.transport import Transport
from distant.models.index import IndexDescriptor

logger = logging.getLogger(__name__)

_INDEX_LIST = TypeAdapter(list[IndexDescriptor])


class ClusterHealth(BaseModel):
    """Cluster-level health summary."""

    cluster_name: str | None = Field(default=None, description="Cluster name")
    status: str = Field(description="green, yellow, or red")
    number_of_nodes: int = Field(default=0, description="Nodes in the cluster")
    active_shards: int = Field(default=0, description="Active shards")
    unassigned_shards: int = Field(default=0, description="Unassigned shards")


class IndexAdmin:
    """Index administration over a transport.

    Args:
        transport: Engine transport.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def list_indices(self) -> list[IndexDescriptor]:
        """List every index with its health, document counts, and size."""
        response = await self._transport.perform("GET", "/_cat/indices", params={"format": "json"})
        raise_for_status(response.status_code, response.body, operation="list indices")
        data = decode_json(response.body, operation="list indices")
        try:
            return _INDEX_LIST.validate_python(data)
        except ValidationError as e:
            raise MalformedResponse(f"index listing has an unexpected shape: {e}") from e

    async def delete_index(self, name: str) -> None:
        """Delete one index by name."""
        response = await self._transport.perform("DELETE", f"/{quote(name, safe='')}")
        raise_for_status(response.status_code, response.body, operation=f"delete index {name!r}")
        logger.info("Deleted index %s", name)

    async def delete_all_indices(self) -> list[str]:
        """Delete every listed index, one at a time.

        Returns:
            Names of the deleted indices.
        """
        deleted: list[str] = []
        for descriptor in await self.list_indices():
            await self.delete_index(descriptor.index)
            deleted.append(descriptor.index)
        return deleted

    async def cluster_health(self) -> ClusterHealth:
        """Fetch the cluster health summary."""
        response = await self._transport.perform("GET", "/_cluster/health")
        raise_for_status(response.status_code, response.body, operation="cluster health")
        data: Any = decode_json(response.body, operation="cluster health")
        try:
            return ClusterHealth.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"cluster health has an unexpected shape: {e}") from e
