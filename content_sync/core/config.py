"""
Configuracion central del sincronizador.
Gestiona variables de entorno y construye los valores de configuracion
explicitos (`SyncOptions`) que se pasan a cada componente.

Los componentes del nucleo (migrador, importadores, locators) nunca leen
`settings` directamente: reciben `SyncOptions` por constructor.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings

from content_sync.shared.exceptions.base import ConfigurationError


TableMapEntry = Union[str, Dict[str, Any]]


@dataclass(frozen=True)
class S3BucketConfig:
    """Destino S3 (o compatible) para copiar assets."""

    bucket: str
    region: Optional[str] = None
    endpoint: Optional[str] = None
    access_key: Optional[str] = None
    access_secret: Optional[str] = None


@dataclass(frozen=True)
class SyncOptions:
    """
    Configuracion explicita del mapeo Contentful -> PostgreSQL.

    - table_map: typeId -> nombre de tabla, o {"name": ...}
    - transform_identifier / pluralize: overrides opcionales de naming
    """

    space_id: str = ""
    environment_id: str = "master"
    default_locale: str = "en-US"
    table_prefix: str = ""
    migration_table_prefix: str = "cfsync_"
    table_map: Dict[str, TableMapEntry] = field(default_factory=dict)
    transform_identifier: Optional[Callable[[str], str]] = None
    pluralize: Optional[Callable[[str], str]] = None


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno (y `.env`) y proporciona valores por defecto.
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="content-sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor de webhooks
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="postgres")
    DATABASE_PASSWORD: str = Field(default="")
    DATABASE_NAME: str = Field(default="content_sync")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")

    # Contentful
    CONTENTFUL_SPACE_ID: str = Field(default="")
    CONTENTFUL_ENVIRONMENT_ID: str = Field(default="master")
    CONTENTFUL_MANAGEMENT_TOKEN: str = Field(default="")
    CONTENTFUL_DELIVERY_TOKEN: str = Field(default="")
    CDA_BASE_URL: str = Field(default="https://cdn.contentful.com")
    CMA_BASE_URL: str = Field(default="https://api.contentful.com")

    # Mapeo de tablas
    TABLE_PREFIX: str = Field(default="")
    MIGRATION_TABLE_PREFIX: str = Field(default="cfsync_")
    # JSON: {"blogPost": "posts", "author": {"name": "people"}}
    TABLE_MAP: str = Field(default="{}")
    DEFAULT_LOCALE: str = Field(default="en-US")

    # Archivos de esquema / migraciones
    SCHEMA_FILE: str = Field(default="migrations/schema.json")
    MIGRATION_DIRECTORY: str = Field(default="migrations")

    # Ajustes de importacion
    BATCH_PAGE_SIZE: int = Field(default=500)
    IMPORT_CONCURRENCY: int = Field(default=16)
    PROGRESS_INTERVAL_S: float = Field(default=10.0)

    # Cliente HTTP de Contentful
    HTTP_TIMEOUT_S: float = Field(default=30.0)
    CDA_MAX_RETRIES: int = Field(default=30)
    CMA_MAX_RETRIES: int = Field(default=10)

    # Assets
    ASSET_STORAGE_DIR: str = Field(default="")
    # JSON: [{"bucket": "...", "region": "...", "endpoint": "...", ...}]
    ASSET_S3_BUCKETS: str = Field(default="[]")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/content_sync.log")
    PRINT_SQL_QUERIES: bool = Field(default=False)

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    def sync_options(self) -> SyncOptions:
        """Construye el valor de configuracion que consumen los componentes."""
        return SyncOptions(
            space_id=self.CONTENTFUL_SPACE_ID,
            environment_id=self.CONTENTFUL_ENVIRONMENT_ID or "master",
            default_locale=self.DEFAULT_LOCALE,
            table_prefix=self.TABLE_PREFIX,
            migration_table_prefix=self.MIGRATION_TABLE_PREFIX,
            table_map=parse_table_map(self.TABLE_MAP),
        )

    def s3_buckets(self) -> List[S3BucketConfig]:
        """Parsea ASSET_S3_BUCKETS."""
        try:
            raw = json.loads(self.ASSET_S3_BUCKETS or "[]")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"ASSET_S3_BUCKETS no es JSON valido: {e}") from e

        if not isinstance(raw, list):
            raise ConfigurationError("ASSET_S3_BUCKETS debe ser una lista JSON")

        buckets = []
        for item in raw:
            if not isinstance(item, dict) or not item.get("bucket"):
                raise ConfigurationError(f"Bucket invalido en ASSET_S3_BUCKETS: {item!r}")
            buckets.append(
                S3BucketConfig(
                    bucket=item["bucket"],
                    region=item.get("region"),
                    endpoint=item.get("endpoint"),
                    access_key=item.get("accessKey") or item.get("access_key"),
                    access_secret=item.get("accessSecret") or item.get("access_secret"),
                )
            )
        return buckets

    def public_dict(self) -> Dict[str, Any]:
        """Configuracion efectiva sin secretos (comando `config`)."""
        data = self.model_dump()
        for key in ("DATABASE_PASSWORD", "CONTENTFUL_MANAGEMENT_TOKEN", "CONTENTFUL_DELIVERY_TOKEN"):
            if data.get(key):
                data[key] = "***"
        if self.DATABASE_URL and "@" in self.DATABASE_URL:
            data["DATABASE_URL"] = "***"
        data["effective_database_url"] = "***"
        return data

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


def parse_table_map(raw: str) -> Dict[str, TableMapEntry]:
    """
    Parsea TABLE_MAP.
    Acepta un objeto JSON cuyos valores son el nombre de tabla o {"name": ...}.
    """
    if not raw:
        return {}
    try:
        table_map = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"TABLE_MAP no es JSON valido: {e}") from e

    if not isinstance(table_map, dict):
        raise ConfigurationError("TABLE_MAP debe ser un objeto JSON")

    for type_id, entry in table_map.items():
        if isinstance(entry, str):
            continue
        if isinstance(entry, dict) and isinstance(entry.get("name", ""), str):
            continue
        raise ConfigurationError(
            f"Entrada invalida en TABLE_MAP para '{type_id}': {entry!r}",
            details={"type_id": type_id},
        )
    return table_map


settings = Settings()
