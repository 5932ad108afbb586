"""
Casos de uso de esquema: generar migraciones y aplicarlas.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from content_sync.application.services.naming import Naming
from content_sync.application.services.schema_migrator import SchemaMigrator
from content_sync.domain.entities.contentful import SchemaMetadata
from content_sync.infrastructure.contentful.management_client import ContentfulManagementClient
from content_sync.infrastructure.database.gateway import DatabaseGateway
from content_sync.infrastructure.storage.migration_files import MigrationFiles
from content_sync.infrastructure.storage.snapshot_store import SnapshotStore


class SchemaUseCases:
    """
    Orquesta el flujo de esquema:
    snapshot viejo + esquema del CMS -> DDL -> archivo de migración -> snapshot nuevo.
    """

    def __init__(
        self,
        *,
        migrator: SchemaMigrator,
        naming: Naming,
        management: ContentfulManagementClient,
        snapshot_store: SnapshotStore,
        migration_files: MigrationFiles,
        gateway: Optional[DatabaseGateway] = None,
    ) -> None:
        self.migrator = migrator
        self.naming = naming
        self.management = management
        self.snapshot_store = snapshot_store
        self.migration_files = migration_files
        self.gateway = gateway

    async def migrate(self, *, dry_run: bool = False) -> Optional[Path]:
        """
        Genera una migración nueva contra el esquema actual del CMS.

        El snapshot se guarda solo después de escribir el archivo de migración.

        Returns:
            Optional[Path]: ruta del archivo escrito, o None si no hay cambios (o dry run)
        """
        old = self.snapshot_store.load()
        if old is None:
            logger.info("No hay snapshot previo: primera migración")

        new = await self.management.fetch_schema()
        ddl = self.migrator.migrate(old, new)

        if ddl is None:
            logger.info("Sin cambios de esquema")
            return None

        if dry_run:
            logger.info(f"DDL generado (dry run, no se escribe):\n{ddl}")
            return None

        path = self.migration_files.write(ddl)
        logger.info(f"Migración escrita en {path}")

        self.snapshot_store.save(
            new.with_metadata(SchemaMetadata(has_link_order=True, has_unique_link_indices=True))
        )
        return path

    async def pending_migrations(self) -> list[str]:
        applied = await self._gateway().get_applied_versions(self.naming.migration_table_name())
        return [v for v in self.migration_files.list_versions() if v not in applied]

    async def apply_migrations(self) -> list[str]:
        """
        Aplica las migraciones pendientes en orden de nombre de archivo.

        Cada archivo y su registro en el historial van en una sola transacción.
        """
        gateway = self._gateway()
        pending = await self.pending_migrations()
        if not pending:
            logger.info("No hay migraciones pendientes")
            return []

        for version in pending:
            ddl = self.migration_files.read(version)
            logger.info(f"Aplicando migración {version}...")
            async with gateway.transaction() as conn:
                await conn.execute(ddl)
                await conn.execute(self.migrator.migration_history_insert(version))
            logger.success(f"Migración {version} aplicada")

        return pending

    def _gateway(self) -> DatabaseGateway:
        if self.gateway is None:
            raise RuntimeError("Se requiere conexión a base de datos para aplicar migraciones")
        return self.gateway
