"""
Localizador online: consulta la API de lectura (entradas publicadas) y la
API de management (assets).
"""
from __future__ import annotations

from typing import Optional

from content_sync.domain.entities.contentful import Asset, Entry
from content_sync.domain.repositories.content_locator import ContentLocator
from content_sync.infrastructure.contentful.delivery_client import ContentfulDeliveryClient
from content_sync.infrastructure.contentful.management_client import ContentfulManagementClient


class OnlineContentLocator(ContentLocator):
    def __init__(
        self,
        delivery: ContentfulDeliveryClient,
        management: ContentfulManagementClient,
    ) -> None:
        self._delivery = delivery
        self._management = management

    async def retrieve_entry(self, space_id: str, entry_id: str) -> Optional[Entry]:
        return await self._delivery.get_entry(entry_id, space_id=space_id)

    async def retrieve_asset(self, space_id: str, asset_id: str) -> Optional[Asset]:
        return await self._management.get_asset(asset_id, space_id=space_id)
