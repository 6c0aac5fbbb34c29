"""Result normalizer — Converts raw engine responses into typed results.

The engine's ``_search`` and ``_search/scroll`` responses share one shape.
This module validates that shape in full before anything is returned, so a
caller gets either a complete :class:`SearchResult` or an exception, never
a partially populated result.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Generic

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from distant.engine.exceptions import EngineError, MalformedResponse
from distant.engine.query import HIGHLIGHT_POST_TAG, HIGHLIGHT_PRE_TAG
from distant.engine.transport import TransportResponse
from distant.models.document import document_to_dict
from distant.models.response import (
    ResultHighlight,
    ResultMetadata,
    SearchResponse,
    SearchResponseMetadata,
    SearchResultEntry,
)
from distant.models.result import DocT, Hit, SearchResult, Shards, Total

logger = logging.getLogger(__name__)

# Compiled once per process; non-greedy so adjacent spans stay separate
HIGHLIGHT_PATTERN = re.compile(
    re.escape(HIGHLIGHT_PRE_TAG) + r"(.*?)" + re.escape(HIGHLIGHT_POST_TAG),
    re.DOTALL,
)


def extract_highlighted_terms(fragment: str) -> list[str]:
    """Return the text inside every highlight marker pair, left to right.

    Example:
        >>> extract_highlighted_terms("<em>hello</em> <em>world</em>")
        ['hello', 'world']
    """
    return HIGHLIGHT_PATTERN.findall(fragment)


# ── Wire shapes ──────────────────────────────────────────────────────────


class _HitsSection(BaseModel, Generic[DocT]):
    hits: list[Hit[DocT]]
    total: Total
    max_score: float | None = None

    @field_validator("total", mode="before")
    @classmethod
    def _legacy_total(cls, v: Any) -> Any:
        # rest_total_hits_as_int / pre-7.0 engines report a bare integer
        if isinstance(v, int) and not isinstance(v, bool):
            return {"value": v, "relation": "eq"}
        return v


class _SearchEnvelope(BaseModel, Generic[DocT]):
    model_config = ConfigDict(populate_by_name=True)

    took: int = Field(ge=0)
    timed_out: bool = False
    shards: Shards | None = Field(default=None, alias="_shards")
    scroll_id: str | None = Field(default=None, alias="_scroll_id")
    hits: _HitsSection[DocT]


# ── Error handling ───────────────────────────────────────────────────────


def decode_json(raw: bytes | str, *, operation: str = "request") -> Any:
    """Decode a JSON body, raising :class:`MalformedResponse` on failure."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedResponse(f"{operation} response is not valid JSON: {e}") from e


def engine_error(status_code: int, raw: bytes | str, *, operation: str = "request") -> EngineError:
    """Build an :class:`EngineError` from a failed response.

    Understands the engine's ``{"error": {"type", "reason", "root_cause"}}``
    body; anything else is reported with the status code alone.
    """
    error_type: str | None = None
    reason: str | None = None
    root_causes: list[str] = []

    try:
        data = json.loads(raw) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        data = None

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        error_type = error.get("type")
        reason = error.get("reason")
        for cause in error.get("root_cause") or []:
            if isinstance(cause, dict) and cause.get("type"):
                root_causes.append(str(cause["type"]))
    elif isinstance(error, str):
        reason = error

    message = f"{operation} failed with status {status_code}"
    if error_type or reason:
        message += f": {error_type or 'error'}: {reason or ''}".rstrip(": ")
    return EngineError(
        message,
        status_code=status_code,
        error_type=error_type,
        reason=reason,
        root_causes=tuple(root_causes),
    )


def raise_for_status(status_code: int, raw: bytes | str, *, operation: str = "request") -> None:
    """Raise :class:`EngineError` unless ``status_code`` is a 2xx."""
    if not 200 <= status_code < 300:
        raise engine_error(status_code, raw, operation=operation)


# ── Normalizer ───────────────────────────────────────────────────────────


class ResultNormalizer(Generic[DocT]):
    """Validates and converts search responses for one document type.

    Args:
        document_type: Type each hit's ``_source`` is validated as.  A
            pydantic model gives typed sources; the default keeps them as
            plain dicts.

    Example:
        >>> normalizer = ResultNormalizer(SearchDocument)
        >>> result = normalizer.normalize(raw_bytes)
        >>> result.hits[0].source.text
    """

    def __init__(self, document_type: Any = dict[str, Any]) -> None:
        self.document_type = document_type
        self._envelope_type = _SearchEnvelope[document_type]  # type: ignore[valid-type]
        self._result_type = SearchResult[document_type]  # type: ignore[valid-type]

    def normalize(self, raw: bytes | str, status_code: int = 200) -> SearchResult[DocT]:
        """Normalize a raw search or scroll response.

        Args:
            raw: Undecoded response body.
            status_code: HTTP status the body arrived with.

        Returns:
            The fully validated result.

        Raises:
            EngineError: If ``status_code`` is not a success status.
            MalformedResponse: If the body is not JSON or lacks required fields.
        """
        raise_for_status(status_code, raw, operation="search")
        data = decode_json(raw, operation="search")

        try:
            envelope = self._envelope_type.model_validate(data)
            return self._result_type(
                hits=envelope.hits.hits,
                total=envelope.hits.total,
                took=envelope.took,
                timed_out=envelope.timed_out,
                max_score=envelope.hits.max_score,
                shards=envelope.shards,
                scroll_id=envelope.scroll_id,
            )
        except ValidationError as e:
            raise MalformedResponse(f"search response does not match the expected shape: {e}") from e

    def normalize_response(self, response: TransportResponse) -> SearchResult[DocT]:
        """Normalize a :class:`TransportResponse` (status and body together)."""
        return self.normalize(response.body, response.status_code)

    @staticmethod
    def to_response(result: SearchResult[Any], rank_offset: int = 0) -> SearchResponse:
        """Map a normalized result to the caller-facing envelope.

        Args:
            result: A normalized result page.
            rank_offset: Rank of the page's first hit (the request offset).
        """
        entries: list[SearchResultEntry] = []
        for position, hit in enumerate(result.hits):
            highlights = [
                ResultHighlight(field=field, text=fragment)
                for field, fragments in hit.highlight.items()
                for fragment in fragments
            ]
            extracted = [term for highlight in highlights for term in extract_highlighted_terms(highlight.text)]
            entries.append(
                SearchResultEntry(
                    id=hit.id,
                    result=document_to_dict(hit.source),
                    metadata=ResultMetadata(
                        index=rank_offset + position,
                        score=hit.score,
                        highlights=highlights,
                        highlights_extracted=extracted,
                    ),
                )
            )

        return SearchResponse(
            metadata=SearchResponseMetadata(
                result_total_items=result.total.value,
                total_relation=result.total.relation.value,
                total_is_exact=result.total.is_exact,
                took_ms=result.took,
                scroll_id=result.scroll_id,
            ),
            results=entries,
        )
