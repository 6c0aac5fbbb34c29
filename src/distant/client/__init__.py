"""Distant client — Async and sync facades over the engine core.

Quick start::

    from distant.client import DistantClient
    from distant.models.query import SearchFilter, SearchRequest

    client = DistantClient()
    result = client.search(
        SearchRequest(
            indices=["notes"],
            filter=SearchFilter(global_filter="apple", global_filter_fields=["text"]),
        )
    )
"""

from distant.client.client import AsyncDistantClient, DistantClient

__all__ = ["AsyncDistantClient", "DistantClient"]
