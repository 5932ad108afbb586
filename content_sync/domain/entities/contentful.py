"""
Modelo de contenido del CMS (content types, entradas, assets, snapshots).

Se mantienen libres de I/O: se construyen desde el JSON del CMS
(`{"sys": {...}, "fields": {...}}`) con `from_dict` y se vuelven a
serializar con `to_dict` para el snapshot de esquema y el export.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from content_sync.shared.exceptions import InvalidContentTypeError, InvalidEntryError


LINK_TYPES = frozenset({"Entry", "Asset"})

# Tipos de campo que se guardan como JSONB
JSON_FIELD_TYPES = frozenset({"Object", "Location"})


def _sys_link_id(value: Any) -> Optional[str]:
    """Extrae el id de un link `{"sys": {"id": ...}}` dentro de `sys`."""
    if isinstance(value, dict):
        sys = value.get("sys")
        if isinstance(sys, dict):
            return sys.get("id")
    return None


@dataclass(frozen=True)
class FieldItems:
    """Descriptor del tipo de elemento de un campo `Array`."""

    type: str
    link_type: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "FieldItems":
        return cls(type=raw.get("type"), link_type=raw.get("linkType"))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.link_type:
            data["linkType"] = self.link_type
        return data


@dataclass(frozen=True)
class Field:
    """
    Definición de un campo de content type.

    Invariantes (validadas en `from_dict`):
    - `Array` siempre trae `items`
    - `Link` (o `Array` de `Link`) siempre trae link type
    """

    id: str
    name: str
    type: str
    link_type: Optional[str] = None
    items: Optional[FieldItems] = None
    localized: bool = False
    required: bool = False
    disabled: bool = False
    omitted: bool = False

    @property
    def is_array(self) -> bool:
        return self.type == "Array"

    @property
    def element_type(self) -> str:
        """Tipo efectivo: el de los items para `Array`, el propio en otro caso."""
        if self.is_array and self.items is not None:
            return self.items.type
        return self.type

    @property
    def element_link_type(self) -> Optional[str]:
        if self.is_array and self.items is not None:
            return self.items.link_type
        return self.link_type

    @property
    def is_link(self) -> bool:
        return self.element_type == "Link"

    @property
    def is_array_of_links(self) -> bool:
        return self.is_array and self.is_link

    @classmethod
    def from_dict(cls, raw: dict[str, Any], type_id: Optional[str] = None) -> "Field":
        field_id = raw.get("id")
        if not field_id:
            raise InvalidContentTypeError(f"Campo sin id en content type '{type_id}'", type_id=type_id)

        field_type = raw.get("type")
        items = None
        if field_type == "Array":
            raw_items = raw.get("items")
            if not isinstance(raw_items, dict) or not raw_items.get("type"):
                raise InvalidContentTypeError(
                    f"El campo Array '{field_id}' de '{type_id}' no tiene descriptor 'items'",
                    type_id=type_id,
                )
            items = FieldItems.from_dict(raw_items)

        f = cls(
            id=field_id,
            name=raw.get("name") or field_id,
            type=field_type,
            link_type=raw.get("linkType"),
            items=items,
            localized=bool(raw.get("localized", False)),
            required=bool(raw.get("required", False)),
            disabled=bool(raw.get("disabled", False)),
            omitted=bool(raw.get("omitted", False)),
        )

        if f.is_link and f.element_link_type not in LINK_TYPES:
            raise InvalidContentTypeError(
                f"El campo Link '{field_id}' de '{type_id}' tiene link type inválido "
                f"'{f.element_link_type}'",
                type_id=type_id,
            )
        return f

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "localized": self.localized,
            "required": self.required,
            "disabled": self.disabled,
            "omitted": self.omitted,
        }
        if self.link_type:
            data["linkType"] = self.link_type
        if self.items is not None:
            data["items"] = self.items.to_dict()
        return data


@dataclass(frozen=True)
class ContentType:
    """Definición de content type: nombre y campos tipados."""

    id: str
    name: str
    fields: tuple[Field, ...] = ()
    display_field: Optional[str] = None
    description: Optional[str] = None

    def get_field(self, field_id: str) -> Optional[Field]:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ContentType":
        type_id = (raw.get("sys") or {}).get("id")
        if not type_id:
            raise InvalidContentTypeError("Content type sin sys.id")

        fields = tuple(Field.from_dict(f, type_id) for f in raw.get("fields") or [])

        seen: set[str] = set()
        for f in fields:
            if f.id in seen:
                raise InvalidContentTypeError(
                    f"Campo duplicado '{f.id}' en content type '{type_id}'",
                    type_id=type_id,
                )
            seen.add(f.id)

        return cls(
            id=type_id,
            name=raw.get("name") or type_id,
            fields=fields,
            display_field=raw.get("displayField"),
            description=raw.get("description"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sys": {"id": self.id, "type": "ContentType"},
            "name": self.name,
            "description": self.description,
            "displayField": self.display_field,
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class Entry:
    """
    Entrada del CMS. `fields` conserva el JSON crudo (mapa por locale);
    la decodificación tipada la hace el importador según el content type.
    """

    id: str
    content_type_id: str
    space_id: Optional[str] = None
    environment_id: Optional[str] = None
    version: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    published_at: Optional[str] = None
    first_published_at: Optional[str] = None
    published_version: Optional[int] = None
    archived_at: Optional[str] = None
    fields: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_published(self) -> bool:
        return self.published_version is not None or self.published_at is not None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Entry":
        sys = raw.get("sys")
        if not isinstance(sys, dict) or not sys.get("id"):
            raise InvalidEntryError("Entrada sin sys.id")

        content_type_id = _sys_link_id(sys.get("contentType"))
        if not content_type_id:
            raise InvalidEntryError(
                f"La entrada '{sys['id']}' no referencia su content type",
                entry_id=sys["id"],
            )

        return cls(
            id=sys["id"],
            content_type_id=content_type_id,
            space_id=_sys_link_id(sys.get("space")),
            environment_id=_sys_link_id(sys.get("environment")),
            version=sys.get("version") or sys.get("revision"),
            created_at=sys.get("createdAt"),
            updated_at=sys.get("updatedAt"),
            published_at=sys.get("publishedAt"),
            first_published_at=sys.get("firstPublishedAt"),
            published_version=sys.get("publishedVersion"),
            archived_at=sys.get("archivedAt"),
            fields=dict(raw.get("fields") or {}),
            raw=raw,
        )

    def to_dict(self) -> dict[str, Any]:
        if self.raw:
            return self.raw
        sys: dict[str, Any] = {
            "id": self.id,
            "type": "Entry",
            "contentType": {"sys": {"type": "Link", "linkType": "ContentType", "id": self.content_type_id}},
            "version": self.version,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "publishedAt": self.published_at,
            "firstPublishedAt": self.first_published_at,
            "publishedVersion": self.published_version,
        }
        if self.space_id:
            sys["space"] = {"sys": {"type": "Link", "linkType": "Space", "id": self.space_id}}
        if self.environment_id:
            sys["environment"] = {"sys": {"type": "Link", "linkType": "Environment", "id": self.environment_id}}
        return {"sys": sys, "fields": self.fields}


@dataclass(frozen=True)
class AssetFile:
    url: Optional[str]
    content_type: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def absolute_url(self) -> Optional[str]:
        """URL completa: el CMS entrega URLs relativas al protocolo (`//host/ruta`)."""
        if not self.url:
            return None
        if self.url.startswith("//"):
            return f"https:{self.url}"
        return self.url

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AssetFile":
        return cls(
            url=raw.get("url"),
            content_type=raw.get("contentType"),
            file_name=raw.get("fileName"),
        )


@dataclass(frozen=True)
class Asset:
    """Asset del CMS: archivo por locale (`None` si el asset no tiene archivo)."""

    id: str
    space_id: Optional[str] = None
    files: Optional[dict[str, AssetFile]] = None
    published_version: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def file_for(self, locale: str) -> Optional[AssetFile]:
        if not self.files:
            return None
        return self.files.get(locale)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Asset":
        sys = raw.get("sys")
        if not isinstance(sys, dict) or not sys.get("id"):
            raise InvalidEntryError("Asset sin sys.id")

        raw_file = (raw.get("fields") or {}).get("file")
        files = None
        if isinstance(raw_file, dict) and raw_file:
            files = {
                locale: AssetFile.from_dict(value)
                for locale, value in raw_file.items()
                if isinstance(value, dict)
            }

        return cls(
            id=sys["id"],
            space_id=_sys_link_id(sys.get("space")),
            files=files,
            published_version=sys.get("publishedVersion"),
            raw=raw,
        )

    def to_dict(self) -> dict[str, Any]:
        if self.raw:
            return self.raw
        sys: dict[str, Any] = {"id": self.id, "type": "Asset"}
        if self.space_id:
            sys["space"] = {"sys": {"type": "Link", "linkType": "Space", "id": self.space_id}}
        fields: dict[str, Any] = {}
        if self.files is not None:
            fields["file"] = {
                locale: {"url": f.url, "contentType": f.content_type, "fileName": f.file_name}
                for locale, f in self.files.items()
            }
        return {"sys": sys, "fields": fields}


@dataclass(frozen=True)
class SchemaMetadata:
    """Flags de backfills estructurales ya aplicados."""

    has_link_order: bool = False
    has_unique_link_indices: bool = False

    @classmethod
    def from_dict(cls, raw: Optional[dict[str, Any]]) -> "SchemaMetadata":
        raw = raw or {}
        return cls(
            has_link_order=bool(raw.get("hasLinkOrder", False)),
            has_unique_link_indices=bool(raw.get("hasUniqueLinkIndices", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasLinkOrder": self.has_link_order,
            "hasUniqueLinkIndices": self.has_unique_link_indices,
        }


@dataclass(frozen=True)
class SchemaSnapshot:
    """Captura del esquema completo usada como "esquema viejo" en el siguiente diff."""

    content_types: tuple[ContentType, ...] = ()
    metadata: SchemaMetadata = field(default_factory=SchemaMetadata)

    def find_type(self, type_id: str) -> Optional[ContentType]:
        for ct in self.content_types:
            if ct.id == type_id:
                return ct
        return None

    def with_metadata(self, metadata: SchemaMetadata) -> "SchemaSnapshot":
        return SchemaSnapshot(content_types=self.content_types, metadata=metadata)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SchemaSnapshot":
        return cls(
            content_types=tuple(ContentType.from_dict(ct) for ct in raw.get("contentTypes") or []),
            metadata=SchemaMetadata.from_dict(raw.get("metadata")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "contentTypes": [ct.to_dict() for ct in self.content_types],
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class ContentStore:
    """Export completo de un espacio: esquema, entradas, assets y locales."""

    content_types: tuple[ContentType, ...] = ()
    entries: tuple[Entry, ...] = ()
    assets: tuple[Asset, ...] = ()
    locales: tuple[dict[str, Any], ...] = ()

    @property
    def schema(self) -> SchemaSnapshot:
        return SchemaSnapshot(content_types=self.content_types)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ContentStore":
        return cls(
            content_types=tuple(ContentType.from_dict(ct) for ct in raw.get("contentTypes") or []),
            entries=tuple(Entry.from_dict(e) for e in raw.get("entries") or []),
            assets=tuple(Asset.from_dict(a) for a in raw.get("assets") or []),
            locales=tuple(raw.get("locales") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "contentTypes": [ct.to_dict() for ct in self.content_types],
            "entries": [e.to_dict() for e in self.entries],
            "assets": [a.to_dict() for a in self.assets],
            "locales": list(self.locales),
        }
