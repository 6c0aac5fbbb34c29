"""Caller-facing search response envelope.

Built from a normalized ``SearchResult`` by
:meth:`distant.engine.normalizer.ResultNormalizer.to_response`; this is the
shape exposed by the HTTP API.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ResultHighlight(BaseModel):
    """One highlighted fragment and the field it came from."""

    field: str = Field(description="Field name the fragment was taken from")
    text: str = Field(description="Fragment text including highlight markers")


class ResultMetadata(BaseModel):
    """Per-hit ranking and highlight information."""

    index: int = Field(description="Rank of the hit (0-based, offset-adjusted)")
    score: float = Field(description="Relevance score")
    highlights: list[ResultHighlight] = Field(default_factory=list, description="Highlighted fragments")
    highlights_extracted: list[str] = Field(
        default_factory=list,
        description="Text inside every highlight marker pair, in order",
    )


class SearchResultEntry(BaseModel):
    """A single result in the response envelope."""

    id: str = Field(description="Document identifier")
    result: Any = Field(default=None, description="Source document of the hit")
    metadata: ResultMetadata


class SearchResponseMetadata(BaseModel):
    """Page-level metadata."""

    result_total_items: int = Field(description="Reported total number of matches")
    total_relation: str = Field(description="'eq' when exact, 'gte' when a lower bound")
    total_is_exact: bool = Field(description="False when result_total_items is only a lower bound")
    took_ms: int = Field(default=0, description="Engine-side elapsed time in ms")
    scroll_id: str | None = Field(default=None, description="Token for the next page, if scrolling")


class SearchResponse(BaseModel):
    """Search response returned to API consumers."""

    metadata: SearchResponseMetadata
    results: list[SearchResultEntry] = Field(default_factory=list)
