"""Bulk indexer — Submits a batch of documents in one ``_bulk`` request."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from distant.engine.exceptions import MalformedResponse
from distant.engine.normalizer import decode_json, raise_for_status
from distant.engine.transport import Transport
from distant.models.document import document_to_dict
from distant.models.index import BulkInputEntry, BulkItemOutcome, BulkOutcome

logger = logging.getLogger(__name__)


class BulkIndexer:
    """Builds and sends interleaved action/document bulk requests.

    The engine applies operations in submission order but reports success
    or failure per item.  Failed items are returned as-is; deciding whether
    to re-submit them is up to the caller.

    Args:
        transport: Engine transport.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @staticmethod
    def build_lines(index_name: str, entries: Sequence[BulkInputEntry[Any]]) -> list[dict[str, Any]]:
        """Build the bulk body: one action line then one document line per entry."""
        lines: list[dict[str, Any]] = []
        for entry in entries:
            lines.append(
                {
                    "index": {
                        "_index": index_name,
                        "_id": entry.unique_id,
                        "_type": entry.doc_type,
                    }
                }
            )
            lines.append(document_to_dict(entry.document))
        return lines

    async def index_batch(
        self,
        index_name: str,
        entries: Sequence[BulkInputEntry[Any]],
        *,
        refresh: str | None = None,
    ) -> BulkOutcome:
        """Index ``entries`` into ``index_name`` with a single request.

        Args:
            index_name: Target index.
            entries: Documents to index, in submission order.
            refresh: Optional ``refresh`` parameter (``"true"``, ``"wait_for"``).

        Returns:
            Aggregate outcome with per-item results.  An empty batch returns
            an empty successful outcome without contacting the engine.

        Raises:
            EngineError: If the engine rejects the request as a whole.
            MalformedResponse: If the response cannot be interpreted.
            TransportError: If the engine cannot be reached.
        """
        if not entries:
            logger.debug("Empty bulk batch for %s; nothing to send", index_name)
            return BulkOutcome()

        params = {"refresh": refresh} if refresh else None
        response = await self._transport.perform(
            "POST",
            f"/{quote(index_name, safe='')}/_bulk",
            ndjson=self.build_lines(index_name, entries),
            params=params,
        )
        raise_for_status(response.status_code, response.body, operation="bulk")
        outcome = self._parse_outcome(decode_json(response.body, operation="bulk"))

        if outcome.errors:
            logger.warning(
                "Bulk indexing into %s: %d of %d items failed",
                index_name,
                outcome.failed,
                outcome.processed,
            )
        else:
            logger.info("Bulk indexed %d documents into %s in %d ms", outcome.processed, index_name, outcome.took)
        return outcome

    @staticmethod
    def _parse_outcome(data: Any) -> BulkOutcome:
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise MalformedResponse("bulk response is missing the 'items' list")

        items: list[BulkItemOutcome] = []
        try:
            for raw_item in data["items"]:
                # Each item is {"<action>": {...}}
                (action, detail), = raw_item.items()
                items.append(
                    BulkItemOutcome(
                        action=action,
                        index=detail.get("_index"),
                        id=detail.get("_id"),
                        status=detail["status"],
                        result=detail.get("result"),
                        error=detail.get("error"),
                    )
                )
            return BulkOutcome(took=data.get("took", 0), errors=bool(data.get("errors", False)), items=items)
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            raise MalformedResponse(f"bulk response item has an unexpected shape: {e}") from e
