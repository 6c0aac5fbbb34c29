"""Search request models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from distant.models.duration import Duration


class QueryStrategy(str, Enum):
    """Full-text query clause used for the free-text match."""

    MULTI_MATCH = "multi_match"
    QUERY_STRING = "query_string"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    """A single sort field and direction."""

    field: str = Field(min_length=1, description="Field to sort by")
    order: SortOrder = Field(default=SortOrder.ASC, description="Sort direction")


class SearchFilter(BaseModel):
    """Free-text filter applied across a set of fields."""

    global_filter: str | None = Field(default=None, description="Free-text query")
    global_filter_fields: list[str] = Field(default_factory=list, description="Fields to match against")

    @model_validator(mode="after")
    def _fields_required_for_text(self) -> SearchFilter:
        if self.global_filter and not self.global_filter_fields:
            raise ValueError("global_filter_fields must not be empty when global_filter is set")
        return self


class SearchRequest(BaseModel):
    """Structured search request, translated into the engine's query DSL."""

    indices: list[str] = Field(min_length=1, description="Target index names")
    filter: SearchFilter | None = Field(default=None, description="Free-text filter")
    sort: SortSpec | None = Field(default=None, description="Optional sort; engine relevance order when absent")
    offset: int = Field(default=0, ge=0, description="Starting rank")
    length: int = Field(default=10, ge=0, description="Page length")
    strategy: QueryStrategy = Field(default=QueryStrategy.MULTI_MATCH, description="Text query clause")
    scroll: Duration | None = Field(
        default=None,
        description="Keep-alive for a scrollable context (e.g. '5m'); None for a plain search",
    )

    @field_validator("indices")
    @classmethod
    def _non_blank_indices(cls, v: list[str]) -> list[str]:
        if any(not name.strip() for name in v):
            raise ValueError("index names must not be blank")
        return v

    @model_validator(mode="after")
    def _no_offset_when_scrolling(self) -> SearchRequest:
        if self.scroll and self.offset:
            raise ValueError("offset cannot be combined with scroll; a scroll context always starts at the first hit")
        return self

    @property
    def query_text(self) -> str:
        if self.filter is None:
            return ""
        return self.filter.global_filter or ""

    @property
    def query_fields(self) -> list[str]:
        if self.filter is None:
            return []
        return list(self.filter.global_filter_fields)
