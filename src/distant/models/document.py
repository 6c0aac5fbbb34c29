"""Document payload models.

``SearchDocument`` is the default typed source for indexed search material.
Any pydantic model (or a plain ``dict``) can be used instead; results and
bulk entries are generic over the document type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SearchDocument(BaseModel):
    """A piece of searchable material (an excerpt, note, or file chunk).

    Serialized with camelCase wire names (``uniqueId``, ``filePath``, ...),
    which are also the names the engine reports highlight fragments under.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    db_id: int = Field(default=0, description="Row id in the originating store")
    unique_id: str = Field(default="", description="Caller-assigned unique identifier")
    unique_id_type: str = Field(default="", description="Kind of identifier (e.g. 'citekey')")
    material_type: int = Field(default=0, description="Material category code")
    title: str = Field(default="", description="Title of the material")
    text: str = Field(default="", description="Searchable body text")
    context: str = Field(default="", description="Surrounding context of the excerpt")
    source_type: int = Field(default=0, description="Source category code")
    source_id: str | None = Field(default=None, description="Identifier of the source")
    source_name: str | None = Field(default=None, description="Display name of the source")
    file_path: str | None = Field(default=None, description="Path of the originating file")
    location: str | None = Field(default=None, description="Location inside the source (page, offset)")
    location_type: str | None = Field(default=None, description="Kind of location (e.g. 'page')")
    tags: list[str] = Field(default_factory=list, description="Associated tags")


def document_to_dict(document: Any) -> Any:
    """Render a document payload as JSON-ready data using its wire names."""
    if isinstance(document, BaseModel):
        return document.model_dump(mode="json", by_alias=True)
    return document
