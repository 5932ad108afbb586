"""
Interfaz del localizador de contenido.
Define el contrato para resolver entradas publicadas y assets por (space, id).
"""
from abc import ABC, abstractmethod
from typing import Optional

from content_sync.domain.entities.contentful import Asset, Entry


class ContentLocator(ABC):
    """
    Resuelve links en tiempo de conversión.
    Un link colgante se modela como None, nunca como error.
    """

    @abstractmethod
    async def retrieve_entry(self, space_id: str, entry_id: str) -> Optional[Entry]:
        """
        Obtiene la versión publicada de una entrada.

        Args:
            space_id: ID del espacio
            entry_id: ID de la entrada

        Returns:
            Optional[Entry]: Entrada publicada o None si no existe/no está publicada
        """
        pass

    @abstractmethod
    async def retrieve_asset(self, space_id: str, asset_id: str) -> Optional[Asset]:
        """
        Obtiene un asset.

        Args:
            space_id: ID del espacio
            asset_id: ID del asset

        Returns:
            Optional[Asset]: Asset encontrado o None
        """
        pass
