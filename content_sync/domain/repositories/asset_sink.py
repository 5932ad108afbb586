"""
Interfaz de un destino de almacenamiento de assets.
"""
from abc import ABC, abstractmethod
from typing import Optional


class AssetSink(ABC):
    """Almacenamiento de objetos donde se copian los archivos de assets."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Nombre legible del destino (para logs)."""
        pass

    @abstractmethod
    async def has_object(self, key: str) -> bool:
        """
        Indica si el objeto ya existe en el destino.

        Args:
            key: Clave del objeto (ruta sin '/' inicial)

        Returns:
            bool: True si el objeto ya existe
        """
        pass

    @abstractmethod
    async def put_object(self, key: str, body: bytes, content_type: Optional[str]) -> None:
        """
        Guarda el objeto en el destino.

        Args:
            key: Clave del objeto
            body: Contenido binario
            content_type: MIME type (si se conoce)
        """
        pass
