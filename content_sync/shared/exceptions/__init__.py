"""
Jerarquía de excepciones del sincronizador.
"""
from content_sync.shared.exceptions.base import AppException, ConfigurationError
from content_sync.shared.exceptions.domain import (
    DomainException,
    InvalidContentTypeError,
    InvalidEntryError,
    MalformedLinkError,
    MigrationFileExistsError,
    MissingDefinitionError,
    RowShapeMismatchError,
    SchemaIncompatibleError,
    SchemaNotLoadedError,
    UnsupportedFieldTypeError,
)
from content_sync.shared.exceptions.integration import (
    ContentfulApiError,
    DatabaseGatewayError,
    RateLimitExceededError,
)

__all__ = [
    "AppException",
    "ConfigurationError",
    "DomainException",
    "InvalidContentTypeError",
    "InvalidEntryError",
    "MalformedLinkError",
    "MigrationFileExistsError",
    "MissingDefinitionError",
    "RowShapeMismatchError",
    "SchemaIncompatibleError",
    "SchemaNotLoadedError",
    "UnsupportedFieldTypeError",
    "ContentfulApiError",
    "DatabaseGatewayError",
    "RateLimitExceededError",
]
