"""
Localizador offline: índice en memoria sobre un export completo del espacio.
"""
from __future__ import annotations

from typing import Optional

from content_sync.domain.entities.contentful import Asset, ContentStore, Entry
from content_sync.domain.repositories.content_locator import ContentLocator


def _key(space_id: Optional[str], entity_id: str) -> str:
    return f"{space_id}/{entity_id}"


class OfflineContentLocator(ContentLocator):
    """
    Construye los índices `"space/id" -> entidad` una sola vez.
    Una entrada solo se entrega si está publicada.
    """

    def __init__(self, store: ContentStore, *, default_space_id: Optional[str] = None) -> None:
        self._entries: dict[str, Entry] = {}
        self._assets: dict[str, Asset] = {}

        for entry in store.entries:
            self._entries[_key(entry.space_id or default_space_id, entry.id)] = entry
        for asset in store.assets:
            self._assets[_key(asset.space_id or default_space_id, asset.id)] = asset

    async def retrieve_entry(self, space_id: str, entry_id: str) -> Optional[Entry]:
        entry = self._entries.get(_key(space_id, entry_id))
        if entry is None or not entry.is_published:
            return None
        return entry

    async def retrieve_asset(self, space_id: str, asset_id: str) -> Optional[Asset]:
        return self._assets.get(_key(space_id, asset_id))
