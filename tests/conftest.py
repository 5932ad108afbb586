"""
Configuración de fixtures para pytest.

Servicios puros del núcleo (naming, serializador, migrador) con las
opciones de prueba. Los builders del JSON del CMS están en
`tests/unit/cms_factories.py`.
"""
import pytest

from content_sync.application.services.naming import Naming
from content_sync.application.services.schema_migrator import SchemaMigrator
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.core.config import SyncOptions


@pytest.fixture
def options() -> SyncOptions:
    return SyncOptions(space_id="space1", default_locale="en-US")


@pytest.fixture
def naming(options: SyncOptions) -> Naming:
    return Naming(options)


@pytest.fixture
def serializer() -> ValueSerializer:
    return ValueSerializer("en-US")


@pytest.fixture
def migrator(naming: Naming, serializer: ValueSerializer) -> SchemaMigrator:
    return SchemaMigrator(naming, serializer)
