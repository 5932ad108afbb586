"""
Importador por lotes: convierte muchas entradas en sentencias UPSERT paginadas.

Garantías:
- Conversión concurrente acotada por semáforo; resultados en orden de entrada
- Todas las filas de una tabla comparten columnas, clave y política de conflicto
- Claves únicas repetidas se colapsan (gana la última)
- Guardia de frescura para entradas que llegan por webhook
"""
from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from loguru import logger

from content_sync.application.services.entry_importer import EntryImporter
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.core.config import SyncOptions
from content_sync.domain.entities.contentful import ContentStore, Entry
from content_sync.domain.entities.row_update import ON_CONFLICT_UPDATE, RowUpdate
from content_sync.shared.exceptions import RowShapeMismatchError
from content_sync.shared.utils.progress import progress_reporter


DEFAULT_PAGE_SIZE = 500


@dataclass(frozen=True)
class ImportRequest:
    """
    Entrada a importar y su origen.

    - from_webhook: llegó por un webhook que no es de publicación
    - published_event: llegó por un webhook de publicación (la entrada ES la publicada)
    """

    entry: Entry
    from_webhook: bool = False
    published_event: bool = False


class _TableRows:
    """Acumulador de filas de una tabla con validación de forma."""

    def __init__(self, table: str, exemplar: RowUpdate) -> None:
        self.table = table
        self.exemplar = exemplar
        self._rows: dict[tuple, RowUpdate] = {}

    def add(self, row: RowUpdate) -> None:
        if row.shape() != self.exemplar.shape():
            raise RowShapeMismatchError(
                self.table,
                expected=list(self.exemplar.columns),
                actual=list(row.columns),
            )
        self._rows[row.key_values()] = row

    @property
    def rows(self) -> list[RowUpdate]:
        return list(self._rows.values())


class BatchImporter:
    """
    Genera el SQL de importación para un conjunto de entradas.

    Uso:
        importer = BatchImporter(options, entry_importer, serializer, store=store)
        statements = await importer.generate_batch_sql()
    """

    def __init__(
        self,
        options: SyncOptions,
        entry_importer: EntryImporter,
        serializer: ValueSerializer,
        *,
        store: Optional[ContentStore] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        concurrency: int = 16,
        progress_interval_s: float = 10.0,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size debe ser >= 1")
        if concurrency < 1:
            raise ValueError("concurrency debe ser >= 1")
        self._options = options
        self._entry_importer = entry_importer
        self._serializer = serializer
        self._store = store
        self._page_size = page_size
        self._concurrency = concurrency
        self._progress_interval_s = progress_interval_s

    async def generate_batch_sql(
        self,
        entries: Optional[Iterable[Union[Entry, ImportRequest]]] = None,
    ) -> list[str]:
        """
        Retorna la lista ordenada de sentencias SQL (tablas y luego páginas).

        Sin `entries` se importan todas las entradas del store de origen.
        """
        if entries is None:
            if self._store is None:
                raise ValueError("No hay entradas ni store de origen para importar")
            entries = self._store.entries

        requests = [e if isinstance(e, ImportRequest) else ImportRequest(entry=e) for e in entries]
        results = await self._convert_all(requests)

        tables: dict[str, _TableRows] = {}
        for result in results:
            for table_name, rows in result.items():
                for row in rows:
                    accumulator = tables.get(table_name)
                    if accumulator is None:
                        accumulator = _TableRows(table_name, row)
                        tables[table_name] = accumulator
                    accumulator.add(row)

        statements: list[str] = []
        for table_name, accumulator in tables.items():
            statements.extend(self.render_table(table_name, accumulator.rows))
        return statements

    async def _convert_all(self, requests: Sequence[ImportRequest]) -> list[dict[str, list[RowUpdate]]]:
        total = len(requests)
        semaphore = asyncio.Semaphore(self._concurrency)
        converted = 0

        async def _convert(request: ImportRequest) -> dict[str, list[RowUpdate]]:
            nonlocal converted
            async with semaphore:
                result = await self._convert_one(request)
            converted += 1
            return result

        def _report() -> None:
            logger.info(f"Convertidas {converted}/{total} entradas")

        logger.info(f"Generando SQL para {total} entradas...")
        tasks = [asyncio.create_task(_convert(r)) for r in requests]
        async with progress_reporter(self._progress_interval_s, _report):
            try:
                results = await asyncio.gather(*tasks)
            except Exception:
                # Una conversión falló: cancelar las pendientes antes de propagar
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        logger.info(f"Convertidas {converted}/{total} entradas")
        return list(results)

    async def _convert_one(self, request: ImportRequest) -> dict[str, list[RowUpdate]]:
        entry = request.entry

        if request.published_event:
            # La entrada del webhook ES la publicada: no consultar la API de lectura
            return await self._entry_importer.generate_data(entry, entry)

        space_id = entry.space_id or self._options.space_id
        published = await self._entry_importer.locator.retrieve_entry(space_id, entry.id)

        if request.from_webhook and published is not None:
            logger.info(
                f"Entrada {entry.id}: webhook ignorado, existe versión publicada "
                f"(la publicación se procesa en su propio evento)"
            )
            return {}

        return await self._entry_importer.generate_data(published, entry)

    def render_table(self, table_name: str, rows: Sequence[RowUpdate]) -> list[str]:
        """Renderiza las filas de una tabla como INSERT ... ON CONFLICT paginados."""
        if not rows:
            return []

        exemplar = rows[0]
        columns = list(exemplar.columns)
        pages = math.ceil(len(rows) / self._page_size)
        statements = []

        for page in range(pages):
            subset = rows[page * self._page_size:(page + 1) * self._page_size]
            statements.append(
                self._render_page(table_name, exemplar, columns, subset, page + 1, pages, len(rows))
            )
        return statements

    def _render_page(
        self,
        table_name: str,
        exemplar: RowUpdate,
        columns: list[str],
        rows: Sequence[RowUpdate],
        page: int,
        pages: int,
        total: int,
    ) -> str:
        column_list = ", ".join(f'"{c}"' for c in columns)
        values = ", ".join(
            "(\n    "
            + ",\n    ".join(self._serializer.serialize(row.data[c]) for c in columns)
            + "\n  )"
            for row in rows
        )
        conflict_key = ", ".join(f'"{k}"' for k in exemplar.unique_key)
        update_columns = [c for c in columns if c not in exemplar.unique_key]

        if exemplar.on_conflict == ON_CONFLICT_UPDATE and update_columns:
            action = (
                "    UPDATE SET\n    "
                + ",\n    ".join(f'"{c}" = EXCLUDED."{c}"' for c in update_columns)
            )
        else:
            action = "    NOTHING"

        return (
            "\n"
            "-- *********************************************\n"
            "-- *\n"
            f"-- * {table_name} [Page {page} / {pages}, Total: {total}]\n"
            "-- *\n"
            "-- **\n"
            f"INSERT INTO {table_name} ({column_list})\n"
            f"  VALUES {values}\n"
            f"  ON CONFLICT ({conflict_key})\n"
            "  DO\n"
            f"{action}"
        )
