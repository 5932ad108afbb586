"""
Casos de uso de importación CMS -> base de datos.

- Importación completa (export + localizador offline)
- Importación online de entradas/assets (todas o por id)
- Manejo de eventos de webhook
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from loguru import logger

from content_sync.application.services.asset_uploader import AssetUploader
from content_sync.application.services.batch_importer import BatchImporter, ImportRequest
from content_sync.application.services.entry_importer import EntryImporter
from content_sync.application.services.naming import Naming
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.core.config import SyncOptions
from content_sync.domain.entities.contentful import Asset, ContentStore, Entry, SchemaSnapshot
from content_sync.domain.repositories.content_locator import ContentLocator
from content_sync.infrastructure.contentful import webhooks
from content_sync.infrastructure.contentful.management_client import ContentfulManagementClient
from content_sync.infrastructure.contentful.webhooks import WebhookTopic
from content_sync.infrastructure.database.gateway import DatabaseGateway
from content_sync.infrastructure.locators.offline_locator import OfflineContentLocator
from content_sync.infrastructure.storage.snapshot_store import SnapshotStore
from content_sync.shared.exceptions import MissingDefinitionError, SchemaNotLoadedError


STATUS_IMPORTED = "imported"
STATUS_SKIPPED = "skipped"
STATUS_ARCHIVED = "archived"
STATUS_DELETED = "deleted"
STATUS_UNPUBLISHED = "unpublished"
STATUS_TRANSFERRED = "transferred"
STATUS_IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookResult:
    status: str
    topic: str
    statements: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "topic": self.topic, "statements": self.statements}


@dataclass(frozen=True)
class ImportTuning:
    page_size: int = 500
    concurrency: int = 16
    progress_interval_s: float = 10.0


class PullUseCases:
    def __init__(
        self,
        *,
        options: SyncOptions,
        naming: Naming,
        serializer: ValueSerializer,
        gateway: DatabaseGateway,
        management: ContentfulManagementClient,
        online_locator: ContentLocator,
        snapshot_store: SnapshotStore,
        asset_uploader: Optional[AssetUploader] = None,
        tuning: ImportTuning = ImportTuning(),
    ) -> None:
        self.options = options
        self.naming = naming
        self.serializer = serializer
        self.gateway = gateway
        self.management = management
        self.online_locator = online_locator
        self.snapshot_store = snapshot_store
        self.asset_uploader = asset_uploader
        self.tuning = tuning

    # ------------------------------------------------------------------
    # Importación
    # ------------------------------------------------------------------

    async def import_all(self) -> int:
        """Export completo del espacio e importación con localizador offline."""
        schema = self._load_schema()
        logger.info(f"Exportando contenido del espacio '{self.options.space_id}'...")
        store = await self.management.fetch_store()

        if self.asset_uploader is not None and self.asset_uploader.enabled:
            await self.asset_uploader.transfer_all(list(store.assets))

        locator = OfflineContentLocator(store, default_space_id=self.options.space_id)
        importer = self._batch_importer(schema, locator, store=store)

        logger.info(f"Generando SQL para {len(store.entries)} entradas...")
        statements = await importer.generate_batch_sql()
        return await self.execute_statements(statements)

    async def import_all_entries(self) -> int:
        entries = await self.management.get_entries()
        return await self._import_online(entries)

    async def import_entries(self, entry_ids: Sequence[str]) -> int:
        entries = await self.management.get_entries(entry_ids)
        found = {e.id for e in entries}
        for missing in [i for i in entry_ids if i not in found]:
            logger.warning(f"Entrada '{missing}' no encontrada en el CMS")
        return await self._import_online(entries)

    async def import_all_assets(self) -> int:
        assets = await self.management.get_assets()
        return await self._transfer_assets(assets)

    async def import_assets(self, asset_ids: Sequence[str]) -> int:
        assets = await self.management.get_assets(asset_ids)
        return await self._transfer_assets(assets)

    async def export_store(self, path: str) -> Path:
        store = await self.management.fetch_store()
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as fh:
            json.dump(store.to_dict(), fh, indent=2, ensure_ascii=False)
        logger.info(f"Export escrito en {target}")
        return target

    async def execute_statements(self, statements: Sequence[str]) -> int:
        """Ejecuta las sentencias en orden, una a la vez."""
        total = len(statements)
        for index, statement in enumerate(statements, start=1):
            await self.gateway.execute(statement)
            logger.debug(f"Sentencia {index}/{total} ejecutada")
        logger.info(f"{total} sentencias ejecutadas")
        return total

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def handle_webhook(self, topic: str, payload: dict[str, Any]) -> WebhookResult:
        """
        Traduce un evento de webhook a una acción sobre la base.

        - Entry.publish: importar la entrada del payload como publicada
        - Entry.unpublish/save/auto_save/create/unarchive: importar con guardia de frescura
          (payload sin `fields`: se usa la última versión del CMS; si ya no existe, se
          marca la fila como no publicada)
        - Entry.archive / Entry.delete: marcar la fila
        - Asset.publish: copiar el archivo a los destinos configurados
        """
        schema = self._load_schema()
        parsed = WebhookTopic.parse(topic)
        if parsed is None:
            logger.info(f"Webhook ignorado: tópico inválido '{topic}'")
            return WebhookResult(STATUS_IGNORED, topic or "")

        logger.info(f"Webhook recibido: {parsed}")

        if parsed.entity == webhooks.ENTITY_ASSET:
            return await self._handle_asset_event(parsed, payload)

        if parsed.entity != webhooks.ENTITY_ENTRY:
            return WebhookResult(STATUS_IGNORED, str(parsed))

        if parsed.action == webhooks.ACTION_PUBLISH:
            request = ImportRequest(entry=Entry.from_dict(payload), published_event=True)
        elif parsed.action in webhooks.ENTRY_REIMPORT_ACTIONS:
            entry = await self._webhook_entry(payload)
            if entry is None:
                return await self._mark(
                    schema, parsed, payload, {"is_published": False}, STATUS_UNPUBLISHED
                )
            request = ImportRequest(entry=entry, from_webhook=True)
        elif parsed.action == webhooks.ACTION_ARCHIVE:
            return await self._mark(schema, parsed, payload, {"is_archived": True}, STATUS_ARCHIVED)
        elif parsed.action == webhooks.ACTION_DELETE:
            return await self._mark(
                schema, parsed, payload, {"is_deleted": True, "is_published": False}, STATUS_DELETED
            )
        else:
            return WebhookResult(STATUS_IGNORED, str(parsed))

        importer = self._batch_importer(schema, self.online_locator)
        statements = await importer.generate_batch_sql([request])
        if not statements:
            return WebhookResult(STATUS_SKIPPED, str(parsed))

        executed = await self.execute_statements(statements)
        return WebhookResult(STATUS_IMPORTED, str(parsed), executed)

    async def _webhook_entry(self, payload: dict[str, Any]) -> Optional[Entry]:
        entry = Entry.from_dict(payload)
        if not webhooks.is_entry_stub(payload):
            return entry
        logger.info(f"Webhook sin contenido para {entry.id}: consultando la última versión")
        return await self.management.get_entry(entry.id)

    async def _handle_asset_event(self, parsed: WebhookTopic, payload: dict[str, Any]) -> WebhookResult:
        if parsed.action != webhooks.ACTION_PUBLISH or self.asset_uploader is None:
            return WebhookResult(STATUS_IGNORED, str(parsed))
        await self.asset_uploader.transfer(Asset.from_dict(payload))
        return WebhookResult(STATUS_TRANSFERRED, str(parsed))

    async def _mark(
        self,
        schema: SchemaSnapshot,
        parsed: WebhookTopic,
        payload: dict[str, Any],
        values: dict[str, Any],
        status: str,
    ) -> WebhookResult:
        entry = Entry.from_dict(payload)
        if schema.find_type(entry.content_type_id) is None:
            raise MissingDefinitionError(
                f"Content type '{entry.content_type_id}' no está en el esquema cargado",
                type_id=entry.content_type_id,
            )
        table = self.naming.table_name_for_type_id(entry.content_type_id)
        if await self.gateway.get_row_by_unique_key(table, {"cfid": entry.id}) is None:
            logger.warning(f"{table}: la entrada {entry.id} no está en la base, nada que marcar")
            return WebhookResult(STATUS_SKIPPED, str(parsed))

        updated = await self.gateway.mark_entry(table, entry.id, values)
        logger.info(f"{table}: entrada {entry.id} marcada como {status} ({updated} filas)")
        return WebhookResult(status, str(parsed), 1)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_schema(self) -> SchemaSnapshot:
        schema = self.snapshot_store.load()
        if schema is None:
            raise SchemaNotLoadedError(str(self.snapshot_store.path))
        return schema

    def _batch_importer(
        self,
        schema: SchemaSnapshot,
        locator: ContentLocator,
        *,
        store: Optional[ContentStore] = None,
    ) -> BatchImporter:
        entry_importer = EntryImporter(
            self.options,
            self.naming,
            schema,
            locator,
            gateway=self.gateway,
        )
        return BatchImporter(
            self.options,
            entry_importer,
            self.serializer,
            store=store,
            page_size=self.tuning.page_size,
            concurrency=self.tuning.concurrency,
            progress_interval_s=self.tuning.progress_interval_s,
        )

    async def _import_online(self, entries: Sequence[Entry]) -> int:
        schema = self._load_schema()
        importer = self._batch_importer(schema, self.online_locator)
        statements = await importer.generate_batch_sql(entries)
        return await self.execute_statements(statements)

    async def _transfer_assets(self, assets: Sequence[Asset]) -> int:
        if self.asset_uploader is None or not self.asset_uploader.enabled:
            logger.warning("No hay destinos de assets configurados (ASSET_STORAGE_DIR / ASSET_S3_BUCKETS)")
            return 0
        return await self.asset_uploader.transfer_all(list(assets))
