"""
Migrador de esquema: diff entre dos snapshots -> DDL forward-only.

Reglas:
- Content type nuevo -> CREATE TABLE (+ tablas de links)
- Campo nuevo -> ALTER TABLE ADD COLUMN (o tabla de links nueva)
- Cambio de tipo fuera de la whitelist (Text<->Symbol, Text<->RichText) -> error
- Campos/tipos eliminados se dejan en la base (solo se loguea)
- Primera migración crea la tabla de historial de migraciones
- Backfills estructurales de tablas de links, una sola vez según metadata

Todas las validaciones ocurren antes de retornar: ante un error no se
entrega DDL parcial.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from content_sync.application.services.naming import Naming
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.domain.entities.contentful import LINK_TYPES, ContentType, Field, SchemaSnapshot
from content_sync.shared.exceptions import (
    InvalidContentTypeError,
    SchemaIncompatibleError,
    UnsupportedFieldTypeError,
)


SIMPLE_TYPES = {
    "Boolean": "BOOLEAN",
    "Integer": "BIGINT",
    "Number": "DOUBLE PRECISION",
    "Date": "TIMESTAMP",
    "Symbol": "VARCHAR(256)",
    "Text": "TEXT",
    "RichText": "TEXT",
    "Location": "JSONB",
    "Object": "JSONB",
}

LINK_COLUMN_TYPES = {
    "Entry": "VARCHAR(64)",
    "Asset": "VARCHAR(1024)",
}

COMPATIBLE_TYPE_CHANGES = (
    frozenset({"Text", "Symbol"}),
    frozenset({"Text", "RichText"}),
)

BASE_COLUMNS_HEAD = (
    '"id" BIGSERIAL PRIMARY KEY',
    '"cfid" VARCHAR(64) UNIQUE',
    '"environment_cfid" VARCHAR(64)',
    '"created_at" TIMESTAMP',
    '"updated_at" TIMESTAMP',
    '"published_at" TIMESTAMP',
    '"first_published_at" TIMESTAMP',
    '"is_archived" BOOLEAN NOT NULL DEFAULT FALSE',
    '"is_deleted" BOOLEAN NOT NULL DEFAULT FALSE',
    '"is_published" BOOLEAN NOT NULL DEFAULT FALSE',
    '"published_version" INTEGER',
)

BASE_COLUMNS_TAIL = (
    '"raw" JSONB',
)


@dataclass(frozen=True)
class ColumnMap:
    """Mapeo de un campo: columna en la tabla principal o tabla de links."""

    field: Field
    column_name: Optional[str] = None
    column_sql: Optional[str] = None
    link_table_name: Optional[str] = None
    link_table_statements: tuple[str, ...] = ()


@dataclass(frozen=True)
class TableMap:
    content_type: ContentType
    table_name: str
    columns: tuple[ColumnMap, ...] = field(default_factory=tuple)

    def column_for(self, field_id: str) -> Optional[ColumnMap]:
        for column in self.columns:
            if column.field.id == field_id:
                return column
        return None


@dataclass
class _Section:
    title: str
    statements: list[str]


class SchemaMigrator:
    """
    Genera el DDL que lleva la base desde `old` hasta `new`.

    Uso:
        migrator = SchemaMigrator(naming, serializer)
        ddl = migrator.migrate(old_snapshot, new_snapshot)   # None si no hay cambios
    """

    def __init__(self, naming: Naming, serializer: ValueSerializer) -> None:
        self._naming = naming
        self._serializer = serializer

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def migrate(self, old: Optional[SchemaSnapshot], new: SchemaSnapshot) -> Optional[str]:
        sections: list[_Section] = []

        if old is None:
            sections.append(_Section("MIGRATION HISTORY", [self.migration_table_ddl()]))

        for content_type in new.content_types:
            old_type = old.find_type(content_type.id) if old else None
            if old_type is None:
                logger.info(f"Content type nuevo '{content_type.id}'")
                sections.append(
                    _Section(
                        f"NEW CONTENT TYPE: {content_type.name} [{content_type.id}]",
                        self.create_table_statements(content_type),
                    )
                )
                continue

            statements = self._alter_table_statements(old_type, content_type)
            if statements:
                sections.append(
                    _Section(
                        f"MODIFIED CONTENT TYPE: {content_type.name} [{content_type.id}]",
                        statements,
                    )
                )

        if old is not None:
            new_ids = {ct.id for ct in new.content_types}
            for old_type in old.content_types:
                if old_type.id not in new_ids:
                    logger.warning(
                        f"El content type '{old_type.id}' ya no existe; la tabla "
                        f"{self._naming.table_name_for_type_id(old_type.id)} se mantiene"
                    )

            backfill = self._backfill_statements(old)
            if backfill:
                sections.append(_Section("BACKFILL", backfill))

        if not sections:
            return None

        return "\n".join(self._render_section(s) for s in sections)

    def migration_table_ddl(self) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self._naming.migration_table_name()} (\n"
            f'    "version" VARCHAR(256) UNIQUE\n'
            f")"
        )

    def migration_history_insert(self, version: str) -> str:
        return (
            f'INSERT INTO {self._naming.migration_table_name()} ("version") '
            f"VALUES ({self._serializer.serialize(version)})"
        )

    def create_table_statements(self, content_type: ContentType) -> list[str]:
        table = self.table_map(content_type)

        statements: list[str] = []
        for column in table.columns:
            statements.extend(column.link_table_statements)

        definitions = list(BASE_COLUMNS_HEAD)
        definitions.extend(c.column_sql for c in table.columns if c.column_sql)
        definitions.extend(BASE_COLUMNS_TAIL)

        statements.append(
            f"CREATE TABLE {table.table_name} (\n"
            + ",\n".join(f"    {d}" for d in definitions)
            + "\n)"
        )
        return statements

    def table_map(self, content_type: ContentType) -> TableMap:
        self._naming.field_columns(content_type)
        table_name = self._naming.table_name_for_type_id(content_type.id)
        return TableMap(
            content_type=content_type,
            table_name=table_name,
            columns=tuple(self.column_map(content_type, f) for f in content_type.fields),
        )

    def column_map(self, content_type: ContentType, f: Field) -> ColumnMap:
        if f.is_link:
            link_type = f.element_link_type
            if link_type not in LINK_TYPES:
                raise InvalidContentTypeError(
                    f"Link type inválido '{link_type}' en {content_type.id}.{f.id}",
                    type_id=content_type.id,
                )

            if f.is_array:
                link_table = self._naming.link_table_name(content_type.id, f.id)
                return ColumnMap(
                    field=f,
                    link_table_name=link_table,
                    link_table_statements=self.link_table_statements(link_table),
                )

            column_name = self._naming.column_name_for_field(f)
            return ColumnMap(
                field=f,
                column_name=column_name,
                column_sql=f'"{column_name}" {LINK_COLUMN_TYPES[link_type]}',
            )

        column_name = self._naming.column_name_for_field(f)
        return ColumnMap(
            field=f,
            column_name=column_name,
            column_sql=f'"{column_name}" {self.column_type(content_type.id, f)}',
        )

    def column_type(self, type_id: str, f: Field) -> str:
        data_type = SIMPLE_TYPES.get(f.element_type)
        if data_type is None:
            raise UnsupportedFieldTypeError(type_id, f.id, f.element_type)
        if f.is_array:
            data_type += "[]"
        return data_type

    def link_table_statements(self, link_table: str) -> tuple[str, ...]:
        return (
            f"CREATE TABLE {link_table} (\n"
            f'    "owner_cfid" VARCHAR(64) NOT NULL,\n'
            f'    "item_cfid" VARCHAR(64) NOT NULL,\n'
            f'    "order" INTEGER\n'
            f")",
            self._unique_link_index(link_table),
        )

    # ------------------------------------------------------------------
    # Diff de un content type existente
    # ------------------------------------------------------------------

    def _alter_table_statements(self, old_type: ContentType, new_type: ContentType) -> list[str]:
        table = self.table_map(new_type)
        statements: list[str] = []
        new_columns: list[str] = []

        for f in new_type.fields:
            existing = old_type.get_field(f.id)
            if existing is not None:
                statements.extend(self._field_change_statements(table, existing, f))
                continue

            logger.info(f"El content type '{new_type.id}' agregó el campo '{f.id}'")
            column = table.column_for(f.id)
            if column.link_table_name:
                statements.extend(column.link_table_statements)
            if column.column_sql:
                new_columns.append(column.column_sql)

        for old_field in old_type.fields:
            if new_type.get_field(old_field.id) is None:
                logger.warning(
                    f"El campo '{old_field.id}' fue eliminado de '{new_type.id}'; "
                    f"la columna se mantiene"
                )

        if new_columns:
            statements.append(
                f"ALTER TABLE {table.table_name}\n"
                + ",\n".join(f"  ADD COLUMN {c}" for c in new_columns)
            )

        return statements

    def _field_change_statements(self, table: TableMap, old: Field, new: Field) -> list[str]:
        type_id = table.content_type.id

        if old.is_array != new.is_array or old.is_link != new.is_link:
            raise SchemaIncompatibleError(type_id, new.id, old.type, new.type)

        if new.is_link:
            if old.element_link_type != new.element_link_type:
                raise SchemaIncompatibleError(
                    type_id, new.id, old.element_link_type, new.element_link_type, kind="link type"
                )
            return []

        old_type, new_type = old.element_type, new.element_type
        if old_type == new_type:
            return []

        if frozenset({old_type, new_type}) not in COMPATIBLE_TYPE_CHANGES:
            raise SchemaIncompatibleError(type_id, new.id, old_type, new_type)

        old_sql = SIMPLE_TYPES[old_type]
        new_sql = SIMPLE_TYPES[new_type]
        if old_type != "Symbol" or old_sql == new_sql:
            # Text -> Symbol conserva la columna TEXT (más ancha)
            return []

        column = table.column_for(new.id)
        data_type = new_sql + ("[]" if new.is_array else "")
        logger.info(f"Ampliando {table.table_name}.{column.column_name} a {data_type}")
        return [
            f'ALTER TABLE {table.table_name} ALTER COLUMN "{column.column_name}" TYPE {data_type}'
        ]

    # ------------------------------------------------------------------
    # Backfills
    # ------------------------------------------------------------------

    def _backfill_statements(self, old: SchemaSnapshot) -> list[str]:
        link_tables = [
            self._naming.link_table_name(ct.id, f.id)
            for ct in old.content_types
            for f in ct.fields
            if f.is_array_of_links
        ]
        statements: list[str] = []

        if not old.metadata.has_link_order:
            for link_table in link_tables:
                statements.append(f'ALTER TABLE {link_table} ADD COLUMN IF NOT EXISTS "order" INTEGER')

        if not old.metadata.has_unique_link_indices:
            for link_table in link_tables:
                statements.append(f"ALTER TABLE {link_table} DROP CONSTRAINT IF EXISTS {link_table}_item_cfid_key")
                statements.append(
                    f"DELETE FROM {link_table} a USING {link_table} b\n"
                    f"  WHERE a.ctid < b.ctid\n"
                    f'    AND a."owner_cfid" = b."owner_cfid"\n'
                    f'    AND a."item_cfid" = b."item_cfid"'
                )
                statements.append(self._unique_link_index(link_table, if_not_exists=True))

        return statements

    def _unique_link_index(self, link_table: str, if_not_exists: bool = False) -> str:
        guard = "IF NOT EXISTS " if if_not_exists else ""
        return (
            f"CREATE UNIQUE INDEX {guard}{link_table}_owner_item_idx "
            f'ON {link_table} ("owner_cfid", "item_cfid")'
        )

    def _render_section(self, section: _Section) -> str:
        header = (
            "\n"
            "-- *************************************************************\n"
            "-- *\n"
            f"-- * {section.title}\n"
            "-- *\n"
            "-- **\n"
        )
        return header + ";\n\n".join(section.statements) + ";\n"
