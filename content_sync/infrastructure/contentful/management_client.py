"""
Cliente de la API de management (Content Management API).
Lectura fuertemente consistente: incluye borradores y entradas no publicadas.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from loguru import logger

from content_sync.domain.entities.contentful import (
    Asset,
    ContentStore,
    ContentType,
    Entry,
    SchemaSnapshot,
)
from content_sync.infrastructure.contentful.http_client import ContentfulHttpClient
from content_sync.shared.exceptions import ContentfulApiError


IDS_PER_QUERY = 100


def _chunks(ids: Sequence[str], size: int) -> list[Sequence[str]]:
    return [ids[i:i + size] for i in range(0, len(ids), size)]


class ContentfulManagementClient:
    def __init__(self, http: ContentfulHttpClient, *, space_id: str, environment_id: str = "master") -> None:
        self._http = http
        self._space_id = space_id
        self._environment_id = environment_id

    def _base_path(self, space_id: Optional[str] = None) -> str:
        return f"/spaces/{space_id or self._space_id}/environments/{self._environment_id}"

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    async def get_content_types(self) -> list[ContentType]:
        return [
            ContentType.from_dict(item)
            async for item in self._http.iter_collection(f"{self._base_path()}/content_types")
        ]

    async def get_locales(self) -> list[dict[str, Any]]:
        return [item async for item in self._http.iter_collection(f"{self._base_path()}/locales")]

    async def get_entry(self, entry_id: str) -> Optional[Entry]:
        raw = await self._get_or_none(f"{self._base_path()}/entries/{entry_id}")
        return Entry.from_dict(raw) if raw is not None else None

    async def get_entries(self, ids: Optional[Sequence[str]] = None) -> list[Entry]:
        """Todas las entradas, o solo las de `ids` (consultas por lotes de 100)."""
        path = f"{self._base_path()}/entries"
        if ids is None:
            return [Entry.from_dict(item) async for item in self._http.iter_collection(path)]

        entries: list[Entry] = []
        for chunk in _chunks(list(ids), IDS_PER_QUERY):
            params = {"sys.id[in]": ",".join(chunk)}
            entries.extend([Entry.from_dict(item) async for item in self._http.iter_collection(path, params=params)])
        return entries

    async def get_asset(self, asset_id: str, *, space_id: Optional[str] = None) -> Optional[Asset]:
        raw = await self._get_or_none(f"{self._base_path(space_id)}/assets/{asset_id}")
        return Asset.from_dict(raw) if raw is not None else None

    async def get_assets(self, ids: Optional[Sequence[str]] = None) -> list[Asset]:
        path = f"{self._base_path()}/assets"
        if ids is None:
            return [Asset.from_dict(item) async for item in self._http.iter_collection(path)]

        assets: list[Asset] = []
        for chunk in _chunks(list(ids), IDS_PER_QUERY):
            params = {"sys.id[in]": ",".join(chunk)}
            assets.extend([Asset.from_dict(item) async for item in self._http.iter_collection(path, params=params)])
        return assets

    async def fetch_schema(self) -> SchemaSnapshot:
        content_types = await self.get_content_types()
        logger.info(f"Esquema obtenido: {len(content_types)} content types")
        return SchemaSnapshot(content_types=tuple(content_types))

    async def fetch_store(self) -> ContentStore:
        """Export completo del espacio (content types, entradas, assets y locales)."""
        content_types = await self.get_content_types()
        entries = await self.get_entries()
        assets = await self.get_assets()
        locales = await self.get_locales()
        logger.info(
            f"Export de '{self._space_id}': {len(content_types)} content types, "
            f"{len(entries)} entradas, {len(assets)} assets"
        )
        return ContentStore(
            content_types=tuple(content_types),
            entries=tuple(entries),
            assets=tuple(assets),
            locales=tuple(locales),
        )

    async def _get_or_none(self, path: str) -> Optional[dict[str, Any]]:
        try:
            return await self._http.get_json(path)
        except ContentfulApiError as e:
            if e.upstream_status == 404:
                return None
            raise

    async def close(self) -> None:
        await self._http.close()
