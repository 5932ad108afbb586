"""
Derivación de nombres SQL (tablas, columnas, tablas de links) a partir de
los identificadores del CMS.

Todas las reglas salen de un `SyncOptions` explícito: no hay estado global.
"""
from __future__ import annotations

import re
from typing import Optional

from content_sync.core.config import SyncOptions
from content_sync.domain.entities.contentful import ContentType, Field
from content_sync.shared.exceptions import InvalidContentTypeError


_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")

ENTRY_LINK_SUFFIX = "_cfid"
ASSET_LINK_SUFFIX = "_cfurl"

# Columnas que toda tabla principal trae además de las de sus campos
SYSTEM_COLUMNS = frozenset({
    "id",
    "cfid",
    "environment_cfid",
    "created_at",
    "updated_at",
    "published_at",
    "first_published_at",
    "is_archived",
    "is_deleted",
    "is_published",
    "published_version",
    "raw",
})


def snake_case(identifier: str) -> str:
    """
    `blogPost` -> `blog_post`, `HTMLBody` -> `html_body`, `my-field` -> `my_field`.
    """
    s = _ACRONYM_BOUNDARY.sub(r"\1_\2", identifier)
    s = _CASE_BOUNDARY.sub(r"\1_\2", s)
    s = _NON_ALNUM.sub("_", s)
    return s.strip("_").lower()


def default_pluralize(name: str) -> str:
    if name.endswith("s"):
        return name + "es"
    return name + "s"


class Naming:
    """
    Reglas de naming Contentful -> PostgreSQL.

    Uso:
        naming = Naming(settings.sync_options())
        naming.table_name_for_type_id("blogPost")   # "blog_posts"
    """

    def __init__(self, options: SyncOptions) -> None:
        self._options = options

    @property
    def options(self) -> SyncOptions:
        return self._options

    def transform_identifier(self, identifier: str) -> str:
        if self._options.transform_identifier:
            return self._options.transform_identifier(identifier)
        return snake_case(identifier)

    def pluralize(self, name: str) -> str:
        if self._options.pluralize:
            return self._options.pluralize(name)
        return default_pluralize(name)

    def table_name_for_type_id(self, type_id: str) -> str:
        """
        Nombre de tabla de un content type.

        - Entrada de TABLE_MAP (string o {"name": ...}) si existe
        - Si no, el id en snake_case pluralizado
        - Siempre con `table_prefix` y en minúsculas (el DDL no cita nombres de tabla)
        """
        table_name: Optional[str] = None
        entry = self._options.table_map.get(type_id)
        if isinstance(entry, str):
            table_name = entry
        elif isinstance(entry, dict):
            table_name = entry.get("name")

        if not table_name:
            table_name = self.pluralize(self.transform_identifier(type_id))

        return f"{self._options.table_prefix}{table_name}".lower()

    def column_name_for_field_id(self, field_id: str) -> str:
        return self.transform_identifier(field_id)

    def column_name_for_field(self, field: Field) -> Optional[str]:
        """
        Columna del campo en la tabla principal.

        Links singulares llevan sufijo (`_cfid` / `_cfurl`); los arrays de
        links viven en su propia tabla y no tienen columna (retorna None).
        """
        if field.is_array_of_links:
            return None
        column = self.column_name_for_field_id(field.id)
        if field.is_link:
            if field.element_link_type == "Asset":
                return column + ASSET_LINK_SUFFIX
            return column + ENTRY_LINK_SUFFIX
        return column

    def field_columns(self, content_type: ContentType) -> dict[str, str]:
        """
        Columna de cada campo que vive en la tabla principal (field id -> columna).

        Falla si una columna choca con una de sistema o con la de otro campo.
        """
        columns: dict[str, str] = {}
        owners: dict[str, str] = {}
        for f in content_type.fields:
            column = self.column_name_for_field(f)
            if column is None:
                continue
            if column in SYSTEM_COLUMNS:
                raise InvalidContentTypeError(
                    f"El campo '{f.id}' de '{content_type.id}' usa la columna de sistema '{column}'",
                    type_id=content_type.id,
                )
            if column in owners:
                raise InvalidContentTypeError(
                    f"Los campos '{owners[column]}' y '{f.id}' de '{content_type.id}' "
                    f"usan la misma columna '{column}'",
                    type_id=content_type.id,
                )
            owners[column] = f.id
            columns[f.id] = column
        return columns

    def link_table_name(self, type_id: str, field_id: str) -> str:
        return f"{self.table_name_for_type_id(type_id)}_{self.transform_identifier(field_id)}".lower()

    def migration_table_name(self) -> str:
        return f"{self._options.migration_table_prefix}migrations".lower()
