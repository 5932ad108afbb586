"""
Servicios de aplicacion.

Nucleo del sincronizador: naming, serializacion de valores SQL,
diferencias de esquema y generacion de filas/lotes de importacion.
"""
from content_sync.application.services.naming import Naming
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.application.services.schema_migrator import SchemaMigrator
from content_sync.application.services.entry_importer import EntryImporter
from content_sync.application.services.batch_importer import BatchImporter, ImportRequest
from content_sync.application.services.asset_uploader import AssetUploader

__all__ = [
    # Esquema
    "Naming",
    "ValueSerializer",
    "SchemaMigrator",
    # Importacion
    "EntryImporter",
    "BatchImporter",
    "ImportRequest",
    # Assets
    "AssetUploader",
]
