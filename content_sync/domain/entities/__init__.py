"""
Entidades del dominio.
"""
from content_sync.domain.entities.contentful import (
    Asset,
    AssetFile,
    ContentStore,
    ContentType,
    Entry,
    Field,
    FieldItems,
    SchemaMetadata,
    SchemaSnapshot,
)
from content_sync.domain.entities.field_value import (
    ArrayValue,
    FieldValue,
    JsonValue,
    LinkValue,
    LocalizedMap,
    Scalar,
    decode_field_value,
)
from content_sync.domain.entities.row_update import RowUpdate

__all__ = [
    "Asset",
    "AssetFile",
    "ContentStore",
    "ContentType",
    "Entry",
    "Field",
    "FieldItems",
    "SchemaMetadata",
    "SchemaSnapshot",
    "ArrayValue",
    "FieldValue",
    "JsonValue",
    "LinkValue",
    "LocalizedMap",
    "Scalar",
    "decode_field_value",
    "RowUpdate",
]
