"""
Destinos de almacenamiento de assets: directorio local y S3 (boto3).
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import boto3
from loguru import logger

from content_sync.core.config import S3BucketConfig
from content_sync.domain.repositories.asset_sink import AssetSink


class LocalDirectorySink(AssetSink):
    def __init__(self, root: str) -> None:
        self._root = Path(root)

    @property
    def name(self) -> str:
        return f"local:{self._root}"

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise ValueError(f"Clave de objeto fuera del directorio destino: {key}")
        return path

    async def has_object(self, key: str) -> bool:
        return self._path_for(key).is_file()

    async def put_object(self, key: str, body: bytes, content_type: Optional[str]) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, body)


class S3AssetSink(AssetSink):
    """
    Bucket S3 (o compatible vía `endpoint`).

    El listado de claves existentes se obtiene una sola vez y se cachea;
    las llamadas de boto3 (bloqueantes) corren en un thread.
    """

    def __init__(self, config: S3BucketConfig, *, client: Any = None, progress_every: int = 1000) -> None:
        self._config = config
        self._client = client or boto3.client(
            "s3",
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.access_secret,
            region_name=config.region,
            endpoint_url=config.endpoint,
        )
        self._progress_every = progress_every
        self._keys: Optional[set[str]] = None
        self._listing_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return f"s3:{self._config.bucket}"

    def _list_keys(self) -> set[str]:
        keys: set[str] = set()
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._config.bucket):
            for obj in page.get("Contents", []):
                keys.add(obj["Key"])
                if len(keys) % self._progress_every == 0:
                    logger.info(f"{self.name}: {len(keys)} objetos listados...")
        logger.info(f"{self.name}: {len(keys)} objetos existentes")
        return keys

    async def _existing_keys(self) -> set[str]:
        async with self._listing_lock:
            if self._keys is None:
                self._keys = await asyncio.to_thread(self._list_keys)
            return self._keys

    async def has_object(self, key: str) -> bool:
        return key in await self._existing_keys()

    async def put_object(self, key: str, body: bytes, content_type: Optional[str]) -> None:
        params: dict[str, Any] = {
            "Bucket": self._config.bucket,
            "Key": key,
            "Body": body,
        }
        if content_type:
            params["ContentType"] = content_type
        await asyncio.to_thread(lambda: self._client.put_object(**params))
        keys = await self._existing_keys()
        keys.add(key)
