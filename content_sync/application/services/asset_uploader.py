"""
Copia de archivos de assets hacia destinos de almacenamiento (local, S3).

El servicio solo decide SI copiar y con QUÉ clave; la escritura la hace cada
`AssetSink`. El archivo se descarga como máximo una vez por asset y solo si
algún destino no lo tiene.
"""
from __future__ import annotations

from typing import Optional, Sequence
from urllib.parse import urlparse

import httpx
from loguru import logger

from content_sync.domain.entities.contentful import Asset
from content_sync.domain.repositories.asset_sink import AssetSink


def object_key_for_url(url: str) -> str:
    """Clave del objeto: la ruta de la URL sin '/' inicial."""
    return urlparse(url).path.lstrip("/")


class AssetUploader:
    def __init__(
        self,
        sinks: Sequence[AssetSink],
        *,
        default_locale: str = "en-US",
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 30.0,
    ) -> None:
        self._sinks = list(sinks)
        self._default_locale = default_locale
        self._client = client
        self._owns_client = client is None
        self._timeout_s = timeout_s

    @property
    def enabled(self) -> bool:
        return bool(self._sinks)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s, follow_redirects=True)
        return self._client

    async def transfer(self, asset: Asset) -> bool:
        """
        Copia el archivo del asset a los destinos que no lo tengan.

        Returns:
            bool: True si se subió a al menos un destino
        """
        if not self._sinks:
            return False

        asset_file = asset.file_for(self._default_locale)
        if asset_file is None or not asset_file.absolute_url:
            logger.debug(f"Asset {asset.id}: sin archivo para '{self._default_locale}', se omite")
            return False

        url = asset_file.absolute_url
        key = object_key_for_url(url)

        missing = [sink for sink in self._sinks if not await sink.has_object(key)]
        if not missing:
            logger.debug(f"Asset {asset.id}: '{key}' ya existe en todos los destinos")
            return False

        client = await self._get_client()
        response = await client.get(url)
        response.raise_for_status()
        body = response.content

        for sink in missing:
            logger.info(f"Asset {asset.id}: subiendo '{key}' a {sink.name}")
            await sink.put_object(key, body, asset_file.content_type)
        return True

    async def transfer_all(self, assets: Sequence[Asset]) -> int:
        uploaded = 0
        for asset in assets:
            if await self.transfer(asset):
                uploaded += 1
        logger.info(f"Assets transferidos: {uploaded}/{len(assets)}")
        return uploaded

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
