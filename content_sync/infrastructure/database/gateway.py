"""
Gateway PostgreSQL (psycopg v3, async).

- Una conexión perezosa en autocommit: cada UPSERT es idempotente y se
  ejecuta por separado, sin transacción envolvente
- Transacciones explícitas solo para aplicar migraciones
- Las sentencias se serializan con un asyncio.Lock (una conexión, una sentencia a la vez)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

import psycopg
from loguru import logger
from psycopg import errors as pg_errors
from psycopg import sql
from psycopg.rows import dict_row

from content_sync.shared.exceptions import DatabaseGatewayError


def _normalize_psycopg_dsn(dsn: str) -> str:
    """
    psycopg espera `postgresql://` o `postgres://`; se aceptan también las
    URLs con driver de SQLAlchemy (`postgresql+asyncpg://`, `postgresql+psycopg://`).
    """
    if "://" not in dsn:
        return dsn
    scheme, rest = dsn.split("://", 1)
    if scheme.startswith("postgresql+") or scheme.startswith("postgres+"):
        return f"postgresql://{rest}"
    return dsn


def _split_table_name(table: str) -> sql.Composable:
    """`schema.tabla` -> Identifier("schema", "tabla")."""
    return sql.Identifier(*table.split("."))


class DatabaseGateway:
    def __init__(self, dsn: str, *, print_sql: bool = False) -> None:
        self._dsn = _normalize_psycopg_dsn(dsn)
        self._print_sql = print_sql
        self._conn: Optional[psycopg.AsyncConnection] = None
        self._lock = asyncio.Lock()

    async def _connect(self) -> psycopg.AsyncConnection:
        if self._conn is not None and not self._conn.closed:
            return self._conn
        try:
            self._conn = await psycopg.AsyncConnection.connect(
                self._dsn,
                autocommit=True,
                row_factory=dict_row,
            )
        except psycopg.OperationalError as e:
            # Error común en dev: usar hostname de Docker (resuelve solo dentro de la red de Docker).
            raise DatabaseGatewayError(
                f"{e}\n"
                f"Sugerencia: verifica que DATABASE_URL sea accesible desde donde ejecutas el proceso.\n"
                f"- Si DATABASE_URL apunta a un hostname de Docker (p.ej. 'postgres'), eso solo resuelve dentro de Docker.\n"
                f"- Desde el host, usa 'localhost' con el puerto mapeado (5432) y asegúrate que Postgres esté corriendo."
            ) from e
        return self._conn

    def _log(self, query: Any) -> None:
        if self._print_sql:
            logger.debug(f"SQL: {query}")

    async def execute(self, query: Any, params: Optional[Sequence[Any]] = None) -> int:
        """
        Ejecuta una sentencia (o varias separadas por ';' si no hay parámetros).

        Returns:
            int: filas afectadas por la última sentencia
        """
        async with self._lock:
            conn = await self._connect()
            self._log(query)
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return cur.rowcount

    async def fetch_all(self, query: Any, params: Optional[Sequence[Any]] = None) -> list[dict[str, Any]]:
        async with self._lock:
            conn = await self._connect()
            self._log(query)
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    async def get_row_by_unique_key(self, table: str, key: dict[str, Any]) -> Optional[dict[str, Any]]:
        conditions = sql.SQL(" AND ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in key
        )
        query = sql.SQL("SELECT * FROM {} WHERE {} LIMIT 1").format(_split_table_name(table), conditions)
        rows = await self.fetch_all(query, tuple(key.values()))
        return rows[0] if rows else None

    async def get_link_table_targets(self, table: str, owner_cfid: str) -> list[str]:
        """Todos los `item_cfid` enlazados desde `owner_cfid`, en orden."""
        query = sql.SQL('SELECT "item_cfid" FROM {} WHERE "owner_cfid" = %s ORDER BY "order" NULLS LAST').format(
            _split_table_name(table),
        )
        rows = await self.fetch_all(query, (owner_cfid,))
        return [row["item_cfid"] for row in rows]

    async def delete_link_rows(self, table: str, owner_cfid: str, item_cfids: Sequence[str]) -> int:
        if not item_cfids:
            return 0
        query = sql.SQL('DELETE FROM {} WHERE "owner_cfid" = %s AND "item_cfid" = ANY(%s)').format(
            _split_table_name(table),
        )
        return await self.execute(query, (owner_cfid, list(item_cfids)))

    async def mark_entry(self, table: str, cfid: str, values: dict[str, Any]) -> int:
        """UPDATE de flags de una fila existente (archivado, borrado)."""
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in values
        )
        query = sql.SQL("UPDATE {} SET {} WHERE {} = %s").format(
            _split_table_name(table),
            assignments,
            sql.Identifier("cfid"),
        )
        return await self.execute(query, (*values.values(), cfid))

    async def get_applied_versions(self, migration_table: str) -> set[str]:
        """Versiones registradas; vacío si la tabla de historial aún no existe."""
        query = sql.SQL('SELECT "version" FROM {}').format(_split_table_name(migration_table))
        try:
            rows = await self.fetch_all(query)
        except pg_errors.UndefinedTable:
            return set()
        return {row["version"] for row in rows}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """Bloque transaccional: commit al salir, rollback ante excepción."""
        async with self._lock:
            conn = await self._connect()
            async with conn.transaction():
                yield conn

    async def test_connection(self) -> dict[str, Any]:
        rows = await self.fetch_all("SELECT version() AS version, current_database() AS database")
        return rows[0] if rows else {}

    async def close(self) -> None:
        if self._conn is not None and not self._conn.closed:
            await self._conn.close()
        self._conn = None
