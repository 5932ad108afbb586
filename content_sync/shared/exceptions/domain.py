"""
Excepciones relacionadas con el esquema y la conversión de contenido.

Todas son fatales para la operación en curso: el caller (CLI o webhook)
las reporta y aborta. Las condiciones degradadas (asset faltante, limpieza
de tablas de links) no se modelan como excepción, solo se registran en el log.
"""
from typing import Any, Optional

from content_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=500,
            error_code=error_code,
            details=details
        )


class SchemaIncompatibleError(DomainException):
    """Cambio de tipo (o de link type) que no se puede expresar como DDL aditivo."""

    def __init__(
        self,
        type_id: str,
        field_id: str,
        old_type: Optional[str],
        new_type: Optional[str],
        kind: str = "type",
    ):
        super().__init__(
            message=(
                f"El campo '{field_id}' del content type '{type_id}' cambió de {kind} "
                f"'{old_type}' a '{new_type}'. Este cambio no está soportado"
            ),
            error_code="SCHEMA_INCOMPATIBLE",
            details={
                "content_type": type_id,
                "field": field_id,
                "old": old_type,
                "new": new_type,
                "kind": kind,
            }
        )
        self.type_id = type_id
        self.field_id = field_id


class UnsupportedFieldTypeError(DomainException):
    """Tipo de campo desconocido: no se guarda como texto opaco."""

    def __init__(self, type_id: str, field_id: str, field_type: Any):
        super().__init__(
            message=f"Tipo de campo no soportado '{field_type}' en {type_id}.{field_id}",
            error_code="UNSUPPORTED_FIELD_TYPE",
            details={"content_type": type_id, "field": field_id, "type": str(field_type)}
        )


class InvalidContentTypeError(DomainException):
    """Definición de content type que viola las invariantes del modelo."""

    def __init__(self, message: str, type_id: Optional[str] = None):
        details = {"content_type": type_id} if type_id else None
        super().__init__(message=message, error_code="INVALID_CONTENT_TYPE", details=details)


class MissingDefinitionError(DomainException):
    """La entrada referencia un content type o campo ausente del esquema cargado."""

    def __init__(self, message: str, type_id: Optional[str] = None, field_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="MISSING_DEFINITION",
            details={"content_type": type_id, "field": field_id}
        )


class MalformedLinkError(DomainException):
    """Un link no nulo sin su sub-objeto `sys.id`."""

    def __init__(self, field_id: str, value: Any):
        super().__init__(
            message=f"Link mal formado en el campo '{field_id}': falta sys.id ({value!r})",
            error_code="MALFORMED_LINK",
            details={"field": field_id}
        )


class RowShapeMismatchError(DomainException):
    """Filas para la misma tabla con columnas distintas dentro de un batch."""

    def __init__(self, table: str, expected: list[str], actual: list[str]):
        super().__init__(
            message=(
                f"Las filas para '{table}' no comparten el mismo set de columnas: "
                f"esperado {expected}, recibido {actual}"
            ),
            error_code="ROW_SHAPE_MISMATCH",
            details={"table": table, "expected": expected, "actual": actual}
        )


class SchemaNotLoadedError(DomainException):
    """No existe snapshot de esquema; hay que ejecutar `migrate` primero."""

    def __init__(self, schema_file: str):
        super().__init__(
            message="No schema loaded",
            error_code="SCHEMA_NOT_LOADED",
            details={"schema_file": schema_file}
        )


class MigrationFileExistsError(DomainException):
    """Los archivos de migración son append-only; nunca se sobrescriben."""

    def __init__(self, path: str):
        super().__init__(
            message=f"El archivo de migración '{path}' ya existe",
            error_code="MIGRATION_FILE_EXISTS",
            details={"path": path}
        )


class InvalidEntryError(DomainException):
    """Entrada o asset que no respeta el formato del CMS (sys/fields)."""

    def __init__(self, message: str, entry_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="INVALID_ENTRY",
            details={"entry": entry_id}
        )
