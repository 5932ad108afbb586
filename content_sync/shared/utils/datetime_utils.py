"""
Utilidades para manejo de fechas y horas.
"""
from datetime import datetime, timezone


MIGRATION_VERSION_FORMAT = "%Y%m%d_%H%M%S"


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def to_migration_version(dt: datetime) -> str:
        """
        Nombre base de un archivo de migración: `YYYYMMDD_HHMMSS`.

        El orden lexicográfico coincide con el cronológico.
        """
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc)
        return dt.strftime(MIGRATION_VERSION_FORMAT)
