"""
Cliente de la API de lectura (Content Delivery API).

Solo entrega contenido publicado; es eventualmente consistente. Se pide
`locale=*` para recibir los campos con el mismo formato por locale que la
API de management.
"""

from __future__ import annotations

from typing import Any, Optional

from content_sync.domain.entities.contentful import Entry
from content_sync.infrastructure.contentful.http_client import ContentfulHttpClient
from content_sync.shared.exceptions import ContentfulApiError


class ContentfulDeliveryClient:
    def __init__(self, http: ContentfulHttpClient, *, space_id: str, environment_id: str = "master") -> None:
        self._http = http
        self._space_id = space_id
        self._environment_id = environment_id

    def _base_path(self, space_id: Optional[str] = None) -> str:
        return f"/spaces/{space_id or self._space_id}/environments/{self._environment_id}"

    async def get_entry(self, entry_id: str, *, space_id: Optional[str] = None) -> Optional[Entry]:
        """Entrada publicada o None si no existe (404)."""
        raw = await self._get_or_none(f"{self._base_path(space_id)}/entries/{entry_id}")
        return Entry.from_dict(raw) if raw is not None else None

    async def _get_or_none(self, path: str) -> Optional[dict[str, Any]]:
        try:
            return await self._http.get_json(path, params={"locale": "*"})
        except ContentfulApiError as e:
            if e.upstream_status == 404:
                return None
            raise

    async def close(self) -> None:
        await self._http.close()
