"""Engine-facing core: query building, normalization, scrolling, and bulk ingestion."""

from distant.engine.bulk import BulkIndexer
from distant.engine.normalizer import ResultNormalizer, extract_highlighted_terms
from distant.engine.query import QueryBuilder
from distant.engine.scroll import CursorState, ScrollCursor, ScrollCursorManager
from distant.engine.transport import HttpxTransport, Transport, TransportResponse

__all__ = [
    "BulkIndexer",
    "CursorState",
    "HttpxTransport",
    "QueryBuilder",
    "ResultNormalizer",
    "ScrollCursor",
    "ScrollCursorManager",
    "Transport",
    "TransportResponse",
    "extract_highlighted_terms",
]
