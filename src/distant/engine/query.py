"""Query builder — Translates a ``SearchRequest`` into the engine's query DSL.

One builder covers every query flavour; the text clause is chosen by the
request's :class:`~distant.models.query.QueryStrategy`.
"""

from __future__ import annotations

import logging
from typing import Any

from distant.models.query import QueryStrategy, SearchRequest

logger = logging.getLogger(__name__)

HIGHLIGHT_PRE_TAG = "<em>"
HIGHLIGHT_POST_TAG = "</em>"
DEFAULT_FUZZINESS = "AUTO"


class QueryBuilder:
    """Builds search, scroll, and term-lookup payloads.

    Page size and offset are passed through untouched: the engine's own
    limits apply (e.g. ``index.max_result_window``) and violations come
    back as engine errors rather than being truncated here.

    Args:
        fuzziness: Edit-distance tolerance for the text match.
    """

    def __init__(self, fuzziness: str = DEFAULT_FUZZINESS) -> None:
        self._fuzziness = fuzziness

    def build(self, request: SearchRequest) -> dict[str, Any]:
        """Build the ``_search`` body for a request.

        A request without a filter produces a match on an empty string over
        no fields, which matches nothing useful.  Callers wanting an
        unrestricted query must say so upstream.
        """
        payload: dict[str, Any] = {
            "size": request.length,
            "from": request.offset,
            "query": self._text_clause(request),
            "sort": self._sort_clause(request),
            "highlight": {
                "require_field_match": False,
                "fields": {
                    "*": {
                        "pre_tags": [HIGHLIGHT_PRE_TAG],
                        "post_tags": [HIGHLIGHT_POST_TAG],
                    }
                },
            },
        }
        logger.debug("Search payload for %s: %s", request.indices, payload)
        return payload

    def build_params(self, request: SearchRequest) -> dict[str, str]:
        """URL parameters accompanying the search body."""
        if request.scroll:
            return {"scroll": request.scroll}
        return {}

    @staticmethod
    def build_scroll(keep_alive: str, scroll_id: str) -> dict[str, Any]:
        """Build the ``_search/scroll`` body for the next page."""
        return {"scroll": keep_alive, "scroll_id": scroll_id}

    @staticmethod
    def build_term(field: str, value: str, size: int = 0) -> dict[str, Any]:
        """Build an exact-value lookup on a keyword field."""
        return {
            "size": size,
            "query": {"term": {field: value}},
            "sort": [],
        }

    # ── Clauses ──────────────────────────────────────────────────────────

    def _text_clause(self, request: SearchRequest) -> dict[str, Any]:
        clause = {
            "query": request.query_text,
            "fields": request.query_fields,
            "fuzziness": self._fuzziness,
        }
        if request.strategy is QueryStrategy.QUERY_STRING:
            return {"query_string": clause}
        return {"multi_match": clause}

    @staticmethod
    def _sort_clause(request: SearchRequest) -> list[dict[str, Any]]:
        if request.sort is None:
            return []
        return [{request.sort.field: {"order": request.sort.order.value}}]
