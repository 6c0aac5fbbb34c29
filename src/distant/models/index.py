"""Index administration and bulk ingestion models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

DocT = TypeVar("DocT")


class IndexHealth(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class IndexDescriptor(BaseModel):
    """Server-side state of one index, as reported by ``_cat/indices``.

    A read-only snapshot; nothing is cached between listing calls.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    index: str = Field(description="Index name")
    health: IndexHealth | None = Field(default=None, description="Index health (null for closed indices)")
    status: str | None = Field(default=None, description="'open' or 'close'")
    uuid: str | None = Field(default=None, description="Index UUID")
    pri: int | None = Field(default=None, description="Number of primary shards")
    rep: int | None = Field(default=None, description="Number of replicas")
    docs_count: int | None = Field(default=None, alias="docs.count", description="Live documents")
    docs_deleted: int | None = Field(default=None, alias="docs.deleted", description="Deleted documents")
    store_size: str | None = Field(default=None, alias="store.size", description="Total store size")
    pri_store_size: str | None = Field(default=None, alias="pri.store.size", description="Primary store size")

    @field_validator("pri", "rep", "docs_count", "docs_deleted", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        # _cat reports numbers as strings, and blanks for closed indices
        if v is None or v == "":
            return None
        return v


class BulkInputEntry(BaseModel, Generic[DocT]):
    """One document to submit through the bulk indexer."""

    doc_type: str = Field(description="Document type tag sent as the action's '_type'")
    unique_id: str = Field(min_length=1, description="Caller-assigned document id")
    document: DocT = Field(description="Document payload")


class BulkItemOutcome(BaseModel):
    """Per-operation result reported by the engine."""

    model_config = ConfigDict(frozen=True)

    action: str = Field(description="Bulk action (index, create, update, delete)")
    index: str | None = Field(default=None, description="Target index")
    id: str | None = Field(default=None, description="Document id")
    status: int = Field(description="HTTP-style status of this operation")
    result: str | None = Field(default=None, description="'created', 'updated', ...")
    error: dict[str, Any] | None = Field(default=None, description="Engine error object, if failed")

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status < 300


class BulkOutcome(BaseModel):
    """Aggregate outcome of a bulk submission.

    Failed items are reported, never retried; re-submission is up to the
    caller (see :attr:`failed_items`).
    """

    model_config = ConfigDict(frozen=True)

    took: int = Field(default=0, description="Engine-side elapsed time in ms")
    errors: bool = Field(default=False, description="True if any item failed")
    items: list[BulkItemOutcome] = Field(default_factory=list, description="Per-item outcomes in submission order")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def processed(self) -> int:
        return len(self.items)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return self.processed - self.succeeded

    @property
    def failed_items(self) -> list[BulkItemOutcome]:
        return [item for item in self.items if not item.ok]
