"""Pydantic models for content items and index records."""

from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Metadata keys written into every index record. They take precedence over
# any content field with the same name.
RECORD_ID_KEY = "recordId"
CREATED_AT_KEY = "createdAt"
UPDATED_AT_KEY = "updatedAt"
KIND_KEY = "kind"
TYPE_ID_KEY = "typeId"

RESERVED_KEYS: frozenset[str] = frozenset(
    {RECORD_ID_KEY, CREATED_AT_KEY, UPDATED_AT_KEY, KIND_KEY, TYPE_ID_KEY}
)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way Contentful writes it: milliseconds and a ``Z`` suffix for UTC.

    ``2024-01-01T10:00:00.000Z`` read from a sync item is written back unchanged.
    """
    text = value.isoformat(timespec="milliseconds")
    if value.utcoffset() == timedelta(0):
        text = text.removesuffix("+00:00") + "Z"
    return text


class ContentItem(BaseModel):
    """Represents a published item from the content source."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "5KsDBWseXY6QegucYAoacS",
                "kind": "Entry",
                "created_at": "2024-01-01T10:00:00Z",
                "updated_at": "2024-01-15T14:30:00Z",
                "type_id": "post",
                "fields": {"title": {"en-US": "Hello world"}},
            }
        },
    )

    id: str = Field(default=..., min_length=1, description="Unique item identifier")
    kind: str = Field(default=..., description="Item kind reported by the source (Entry, Asset)")
    created_at: datetime = Field(default=..., description="Item creation timestamp")
    updated_at: datetime = Field(default=..., description="Last update timestamp")
    type_id: str | None = Field(default=None, description="Content type identifier, if any")
    fields: dict[str, Any] = Field(default_factory=dict, description="Raw content fields")


class IndexRecord(BaseModel):
    """A flattened, index-ready document keyed by the originating item id."""

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(default=..., min_length=1, description="Record key in the index")
    document: dict[str, Any] = Field(
        default_factory=dict, description="Flattened document including metadata keys"
    )


def to_index_record(item: ContentItem) -> IndexRecord:
    """Flatten a ContentItem into an IndexRecord.

    The record is the item's fields overlaid with its metadata
    (``recordId``, ``createdAt``, ``updatedAt``, ``kind``, ``typeId``), so a
    content field that happens to use one of those names is shadowed.

    Args:
        item: Content item to flatten

    Returns:
        IndexRecord whose record_id equals the item id
    """
    metadata = {
        RECORD_ID_KEY: item.id,
        CREATED_AT_KEY: format_timestamp(item.created_at),
        UPDATED_AT_KEY: format_timestamp(item.updated_at),
        KIND_KEY: item.kind,
        TYPE_ID_KEY: item.type_id,
    }
    document = {**item.fields, **metadata}
    return IndexRecord(record_id=item.id, document=document)


def to_index_records(items: list[ContentItem]) -> list[IndexRecord]:
    """Batch helper for to_index_record."""
    return [to_index_record(item) for item in items]
