"""Normalized search result models.

``SearchResult`` is generic over the source document type so the same
envelope serves untyped (``dict``) and typed (e.g. ``SearchDocument``)
indices.  Instances are frozen: one is built per engine response and never
mutated afterwards.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

DocT = TypeVar("DocT")


class TotalRelation(str, Enum):
    """Qualifier on a reported total hit count."""

    EQ = "eq"
    GTE = "gte"


class Total(BaseModel):
    """Total match count with its relation qualifier."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0, description="Reported number of matches")
    relation: TotalRelation = Field(default=TotalRelation.EQ, description="'eq' = exact, 'gte' = lower bound")

    @property
    def is_exact(self) -> bool:
        return self.relation is TotalRelation.EQ


class Shards(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0


class Hit(BaseModel, Generic[DocT]):
    """A single ranked match."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="_id", description="Document identifier")
    index: str = Field(alias="_index", description="Index the document came from")
    score: float = Field(default=0.0, ge=0.0, alias="_score", description="Relevance score")
    source: DocT = Field(alias="_source", description="Source document")
    doc_type: str | None = Field(default=None, alias="_type", description="Mapping type (legacy engines)")
    highlight: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Highlighted fragments keyed by field name",
    )

    @field_validator("score", mode="before")
    @classmethod
    def _null_score(cls, v: Any) -> Any:
        # Engines report a null score when results are explicitly sorted
        return 0.0 if v is None else v

    @field_validator("highlight", mode="before")
    @classmethod
    def _null_highlight(cls, v: Any) -> Any:
        return {} if v is None else v


class SearchResult(BaseModel, Generic[DocT]):
    """A normalized page of search results."""

    model_config = ConfigDict(frozen=True)

    hits: list[Hit[DocT]] = Field(default_factory=list, description="Hits in engine rank order")
    total: Total = Field(description="Total matches across all pages")
    took: int = Field(ge=0, description="Engine-side elapsed time in ms")
    timed_out: bool = Field(default=False, description="Whether the engine hit its search timeout")
    max_score: float | None = Field(default=None, description="Highest score on this page")
    shards: Shards | None = Field(default=None, description="Shard summary, when reported")
    scroll_id: str | None = Field(default=None, description="Token for fetching the next page")

    @property
    def is_empty(self) -> bool:
        return not self.hits
