"""
Persistencia del snapshot de esquema (JSON).

La escritura es atómica: archivo temporal en el mismo directorio + os.replace.
"""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from content_sync.domain.entities.contentful import SchemaSnapshot


class SnapshotStore:
    def __init__(self, path: str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> Optional[SchemaSnapshot]:
        """Snapshot guardado, o None si nunca se migró (primera migración)."""
        if not self.exists():
            return None
        with self._path.open("r", encoding="utf-8") as fh:
            return SchemaSnapshot.from_dict(json.load(fh))

    def save(self, snapshot: SchemaSnapshot) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=str(self._path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(snapshot.to_dict(), fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Snapshot de esquema guardado en {self._path}")
