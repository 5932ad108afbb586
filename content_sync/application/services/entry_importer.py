"""
Importador de una entrada: Entry -> RowUpdate por tabla.

- Fila principal (UPSERT por cfid)
- Links singulares: `_cfid` (Entry) / `_cfurl` (Asset, resuelto vía locator)
- Arrays de links: filas en la tabla de links (owner, item, order)
  y limpieza best-effort de links que ya no están en el array
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

from content_sync.application.services.naming import Naming
from content_sync.core.config import SyncOptions
from content_sync.domain.entities.contentful import (
    JSON_FIELD_TYPES,
    ContentType,
    Entry,
    Field,
    SchemaSnapshot,
)
from content_sync.domain.entities.field_value import (
    ArrayValue,
    FieldValue,
    JsonValue,
    LinkValue,
    decode_field_value,
    to_python,
)
from content_sync.domain.entities.row_update import ON_CONFLICT_UPDATE, RowUpdate
from content_sync.domain.repositories.content_locator import ContentLocator
from content_sync.shared.exceptions import MissingDefinitionError

if TYPE_CHECKING:
    from content_sync.infrastructure.database.gateway import DatabaseGateway


MAIN_UNIQUE_KEY = ("cfid",)
LINK_UNIQUE_KEY = ("owner_cfid", "item_cfid")

ASSET_MISSING = "cf-asset-missing"
ASSET_FILE_MISSING = "cf-asset-file-missing"
ASSET_URL_MISSING = "cf-asset-url-missing"


class EntryImporter:
    """
    Convierte una entrada en filas relacionales.

    El gateway es opcional: sin él no se limpian filas viejas de tablas de links.
    """

    def __init__(
        self,
        options: SyncOptions,
        naming: Naming,
        schema: SchemaSnapshot,
        locator: ContentLocator,
        *,
        gateway: Optional["DatabaseGateway"] = None,
    ) -> None:
        self._options = options
        self._naming = naming
        self._schema = schema
        self._locator = locator
        self._gateway = gateway

    @property
    def locator(self) -> ContentLocator:
        return self._locator

    async def generate_data(
        self,
        published: Optional[Entry],
        latest: Optional[Entry] = None,
    ) -> dict[str, list[RowUpdate]]:
        """
        Genera las filas de una entrada.

        Si existe versión publicada es la autoritativa (`is_published=TRUE`);
        si no, se usa la última versión (borrador) con `is_published=FALSE`.
        """
        entry = published if published is not None else latest
        if entry is None:
            raise ValueError("generate_data requiere una versión publicada o la última versión")
        is_published = published is not None

        content_type = self._content_type_for(entry)
        table_name = self._naming.table_name_for_type_id(content_type.id)
        data: dict[str, list[RowUpdate]] = {}

        row: dict[str, Any] = {
            "environment_cfid": entry.environment_id,
            "cfid": entry.id,
        }

        columns = self._naming.field_columns(content_type)
        for f in content_type.fields:
            value = self._localized_value(entry, f)

            if f.is_array_of_links:
                await self._add_link_rows(data, entry, content_type, f, value)
                continue

            column = columns[f.id]
            if f.is_link:
                if value is None:
                    row[column] = None
                elif f.element_link_type == "Asset":
                    row[column] = await self._resolve_asset_url(entry, f, value)
                else:
                    row[column] = value.target_id
                continue

            if f.type in JSON_FIELD_TYPES and value is not None:
                row[column] = JsonValue(to_python(value))
            else:
                row[column] = to_python(value)

        row["created_at"] = entry.created_at
        row["updated_at"] = entry.updated_at
        row["published_at"] = entry.published_at
        row["first_published_at"] = entry.first_published_at
        row["is_published"] = is_published
        row["is_archived"] = False
        row["is_deleted"] = False
        row["published_version"] = entry.published_version
        row["raw"] = JsonValue(entry.to_dict())

        data.setdefault(table_name, []).append(
            RowUpdate(
                target_table=table_name,
                unique_key=MAIN_UNIQUE_KEY,
                on_conflict=ON_CONFLICT_UPDATE,
                data=row,
            )
        )
        return data

    def _content_type_for(self, entry: Entry) -> ContentType:
        content_type = self._schema.find_type(entry.content_type_id)
        if content_type is None:
            raise MissingDefinitionError(
                f"La entrada '{entry.id}' usa el content type '{entry.content_type_id}', "
                f"que no está en el esquema cargado",
                type_id=entry.content_type_id,
            )

        for field_id in entry.fields:
            if content_type.get_field(field_id) is None:
                raise MissingDefinitionError(
                    f"No se encontró el campo '{field_id}' en el content type '{content_type.id}'",
                    type_id=content_type.id,
                    field_id=field_id,
                )
        return content_type

    def _localized_value(self, entry: Entry, f: Field) -> Optional[FieldValue]:
        localized = decode_field_value(entry.fields.get(f.id), f)
        if localized is None:
            return None

        locale = self._options.default_locale
        if not localized.has(locale):
            logger.warning(
                f"Entrada {entry.id} [{entry.content_type_id}]: el campo '{f.id}' "
                f"no tiene valor para el locale por defecto '{locale}'"
            )
            return None
        return localized.get(locale)

    async def _resolve_asset_url(self, entry: Entry, f: Field, link: LinkValue) -> str:
        space_id = entry.space_id or self._options.space_id
        asset = await self._locator.retrieve_asset(space_id, link.target_id)

        if asset is None:
            logger.warning(
                f"Entrada {entry.id} [{entry.content_type_id}]: {f.id}: "
                f"no se encontró el asset {link.target_id}"
            )
            return f"{ASSET_MISSING}:{link.target_id}"

        asset_file = asset.file_for(self._options.default_locale)
        if asset_file is None:
            logger.warning(
                f"Entrada {entry.id} [{entry.content_type_id}]: {f.id}: "
                f"el asset {link.target_id} no tiene archivo"
            )
            return f"{ASSET_FILE_MISSING}:{link.target_id}"

        url = asset_file.absolute_url
        if not url:
            logger.error(
                f"Entrada {entry.id} [{entry.content_type_id}]: {f.id}: "
                f"no se pudo obtener la URL del asset {link.target_id}"
            )
            return f"{ASSET_URL_MISSING}:{link.target_id}"
        return url

    async def _add_link_rows(
        self,
        data: dict[str, list[RowUpdate]],
        entry: Entry,
        content_type: ContentType,
        f: Field,
        value: Optional[FieldValue],
    ) -> None:
        link_table = self._naming.link_table_name(content_type.id, f.id)

        target_ids: list[str] = []
        if isinstance(value, ArrayValue):
            for item in value.items:
                if isinstance(item, LinkValue) and item.target_id not in target_ids:
                    target_ids.append(item.target_id)

        rows = data.setdefault(link_table, [])
        for order, target_id in enumerate(target_ids):
            rows.append(
                RowUpdate(
                    target_table=link_table,
                    unique_key=LINK_UNIQUE_KEY,
                    on_conflict=ON_CONFLICT_UPDATE,
                    data={"owner_cfid": entry.id, "item_cfid": target_id, "order": order},
                )
            )
        if not rows:
            del data[link_table]

        if self._gateway is not None:
            await self._prune_stale_links(link_table, entry.id, target_ids)

    async def _prune_stale_links(self, link_table: str, owner_cfid: str, current: list[str]) -> None:
        """Borra de la tabla de links los targets que ya no están en el array."""
        try:
            existing = await self._gateway.get_link_table_targets(link_table, owner_cfid)
            stale = [item for item in existing if item not in current]
            if not stale:
                return
            deleted = await self._gateway.delete_link_rows(link_table, owner_cfid, stale)
            logger.info(f"{link_table}: {deleted} links obsoletos eliminados para {owner_cfid}")
        except Exception as e:
            logger.warning(f"No se pudieron limpiar links obsoletos de {link_table} para {owner_cfid}: {e}")
