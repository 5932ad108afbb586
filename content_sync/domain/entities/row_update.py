"""
Especificación de una fila a insertar/actualizar (UPSERT).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


ON_CONFLICT_UPDATE = "update"
ON_CONFLICT_NOTHING = "nothing"


@dataclass(frozen=True)
class RowUpdate:
    """
    Una fila destino. `data` mantiene el orden de inserción: es el orden
    de columnas del INSERT.

    Todas las RowUpdate de una misma tabla dentro de un batch comparten
    columnas, clave única y política de conflicto.
    """

    target_table: str
    unique_key: tuple[str, ...]
    on_conflict: str
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.on_conflict not in (ON_CONFLICT_UPDATE, ON_CONFLICT_NOTHING):
            raise ValueError(f"Política de conflicto inválida: {self.on_conflict!r}")
        missing = [k for k in self.unique_key if k not in self.data]
        if missing:
            raise ValueError(f"La clave única {missing} no está entre las columnas de {self.target_table}")

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self.data.keys())

    def key_values(self) -> tuple[Any, ...]:
        return tuple(self.data[k] for k in self.unique_key)

    def shape(self) -> tuple[tuple[str, ...], tuple[str, ...], str]:
        return self.columns, self.unique_key, self.on_conflict
