"""
Archivos de migración: `<directorio>/YYYYMMDD_HHMMSS.sql`, solo se agregan,
nunca se reescriben.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from content_sync.shared.exceptions import MigrationFileExistsError
from content_sync.shared.utils.datetime_utils import DateTimeUtils


MIGRATION_SUFFIX = ".sql"


class MigrationFiles:
    def __init__(self, directory: str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def write(self, ddl: str, *, now: Optional[datetime] = None) -> Path:
        """Escribe una migración nueva. Falla si el archivo ya existe."""
        version = DateTimeUtils.to_migration_version(now or DateTimeUtils.now_utc())
        path = self._directory / f"{version}{MIGRATION_SUFFIX}"

        self._directory.mkdir(parents=True, exist_ok=True)
        try:
            # modo "x": crea en exclusiva
            with path.open("x", encoding="utf-8") as fh:
                fh.write(ddl)
        except FileExistsError as e:
            raise MigrationFileExistsError(str(path)) from e
        return path

    def list_versions(self) -> list[str]:
        """Nombres de archivo de migración en orden lexicográfico (= cronológico)."""
        if not self._directory.is_dir():
            return []
        return sorted(p.name for p in self._directory.glob(f"*{MIGRATION_SUFFIX}") if p.is_file())

    def read(self, version: str) -> str:
        return (self._directory / version).read_text(encoding="utf-8")
