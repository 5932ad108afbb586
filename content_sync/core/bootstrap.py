"""
Composición explícita de dependencias.

Construye gateway, clientes del CMS, localizadores, migrador e importadores
a partir de `Settings` y los entrega ya conectados entre sí.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from content_sync.application.services.asset_uploader import AssetUploader
from content_sync.application.services.naming import Naming
from content_sync.application.services.schema_migrator import SchemaMigrator
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.application.use_cases.pull_use_cases import ImportTuning, PullUseCases
from content_sync.application.use_cases.schema_use_cases import SchemaUseCases
from content_sync.core.config import Settings
from content_sync.domain.repositories.asset_sink import AssetSink
from content_sync.infrastructure.contentful.delivery_client import ContentfulDeliveryClient
from content_sync.infrastructure.contentful.http_client import ContentfulHttpClient
from content_sync.infrastructure.contentful.management_client import ContentfulManagementClient
from content_sync.infrastructure.database.gateway import DatabaseGateway
from content_sync.infrastructure.locators.online_locator import OnlineContentLocator
from content_sync.infrastructure.storage.asset_sinks import LocalDirectorySink, S3AssetSink
from content_sync.infrastructure.storage.migration_files import MigrationFiles
from content_sync.infrastructure.storage.snapshot_store import SnapshotStore
from content_sync.shared.exceptions import ConfigurationError


# Pausa extra ante 429 en la API de lectura (segundos)
DELIVERY_ADDITIONAL_DELAY_S = 1.0


@dataclass
class Services:
    gateway: DatabaseGateway
    delivery: ContentfulDeliveryClient
    management: ContentfulManagementClient
    asset_uploader: Optional[AssetUploader]
    schema: SchemaUseCases
    pull: PullUseCases

    async def close(self) -> None:
        await self.gateway.close()
        await self.delivery.close()
        await self.management.close()
        if self.asset_uploader is not None:
            await self.asset_uploader.close()


def _require(value: str, name: str) -> str:
    if not value:
        raise ConfigurationError(f"Falta variable de entorno obligatoria: {name}")
    return value


def build_asset_sinks(settings: Settings) -> list[AssetSink]:
    sinks: list[AssetSink] = []
    if settings.ASSET_STORAGE_DIR:
        sinks.append(LocalDirectorySink(settings.ASSET_STORAGE_DIR))
    for bucket in settings.s3_buckets():
        sinks.append(S3AssetSink(bucket))
    return sinks


def build_services(settings: Settings) -> Services:
    """Punto único de composición para CLI y servidor de webhooks."""
    options = settings.sync_options()
    space_id = _require(options.space_id, "CONTENTFUL_SPACE_ID")

    naming = Naming(options)
    serializer = ValueSerializer(options.default_locale)
    migrator = SchemaMigrator(naming, serializer)

    gateway = DatabaseGateway(settings.effective_database_url, print_sql=settings.PRINT_SQL_QUERIES)

    management = ContentfulManagementClient(
        ContentfulHttpClient(
            base_url=settings.CMA_BASE_URL,
            token=_require(settings.CONTENTFUL_MANAGEMENT_TOKEN, "CONTENTFUL_MANAGEMENT_TOKEN"),
            name="CMA",
            max_retries=settings.CMA_MAX_RETRIES,
            timeout_s=settings.HTTP_TIMEOUT_S,
        ),
        space_id=space_id,
        environment_id=options.environment_id,
    )
    delivery = ContentfulDeliveryClient(
        ContentfulHttpClient(
            base_url=settings.CDA_BASE_URL,
            token=_require(settings.CONTENTFUL_DELIVERY_TOKEN, "CONTENTFUL_DELIVERY_TOKEN"),
            name="CDA",
            max_retries=settings.CDA_MAX_RETRIES,
            additional_delay_s=DELIVERY_ADDITIONAL_DELAY_S,
            timeout_s=settings.HTTP_TIMEOUT_S,
        ),
        space_id=space_id,
        environment_id=options.environment_id,
    )

    sinks = build_asset_sinks(settings)
    asset_uploader = None
    if sinks:
        asset_uploader = AssetUploader(
            sinks,
            default_locale=options.default_locale,
            timeout_s=settings.HTTP_TIMEOUT_S,
        )
        logger.info(f"Destinos de assets: {', '.join(s.name for s in sinks)}")

    snapshot_store = SnapshotStore(settings.SCHEMA_FILE)

    schema = SchemaUseCases(
        migrator=migrator,
        naming=naming,
        management=management,
        snapshot_store=snapshot_store,
        migration_files=MigrationFiles(settings.MIGRATION_DIRECTORY),
        gateway=gateway,
    )
    pull = PullUseCases(
        options=options,
        naming=naming,
        serializer=serializer,
        gateway=gateway,
        management=management,
        online_locator=OnlineContentLocator(delivery, management),
        snapshot_store=snapshot_store,
        asset_uploader=asset_uploader,
        tuning=ImportTuning(
            page_size=settings.BATCH_PAGE_SIZE,
            concurrency=settings.IMPORT_CONCURRENCY,
            progress_interval_s=settings.PROGRESS_INTERVAL_S,
        ),
    )

    return Services(
        gateway=gateway,
        delivery=delivery,
        management=management,
        asset_uploader=asset_uploader,
        schema=schema,
        pull=pull,
    )
