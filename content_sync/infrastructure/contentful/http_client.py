"""
Cliente HTTP base para las APIs de Contentful (lectura y management).

Requisitos cubiertos:
- httpx async
- paginación por limit/skip
- backoff ante 429 usando `X-Contentful-RateLimit-Second-Remaining`
- cualquier otro error (4xx/5xx) se propaga sin reintentar
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx
from loguru import logger

from content_sync.shared.exceptions import ContentfulApiError, RateLimitExceededError


RATE_LIMIT_HEADER = "X-Contentful-RateLimit-Second-Remaining"
COLLECTION_PAGE_SIZE = 1000

Sleep = Callable[[float], Awaitable[None]]


class ContentfulHttpClient:
    """
    Cliente HTTP con reintentos ante rate-limit.

    - 429: espera `max(remaining, backoff) + jitter (hasta 10%) + additional_delay_s`
      y reintenta, hasta `max_retries`; luego `RateLimitExceededError`.
      `backoff` es exponencial desde `min_backoff_s`, acotado por `max_backoff_s`
    - >= 400 (no 429): `ContentfulApiError` inmediato
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        name: str = "Contentful",
        max_retries: int = 10,
        additional_delay_s: float = 0.0,
        min_backoff_s: float = 1.0,
        max_backoff_s: float = 60.0,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        self._name = name
        self._max_retries = max_retries
        self._additional_delay_s = additional_delay_s
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._sleep = sleep
        self._jitter = jitter
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_s,
        )
        self._headers = {"Authorization": f"Bearer {token}"}

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        request_headers = dict(self._headers)
        if headers:
            request_headers.update(headers)

        for attempt in range(self._max_retries + 1):
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=request_headers,
            )

            if response.status_code == 429:
                if attempt >= self._max_retries:
                    break
                wait_s = self.retry_delay(response, attempt)
                logger.warning(
                    f"[{self._name}] {method} {path}: rate limit (429), "
                    f"reintento {attempt + 1}/{self._max_retries} en {wait_s:.2f}s"
                )
                await self._sleep(wait_s)
                continue

            if response.status_code >= 400:
                raise ContentfulApiError(
                    f"[{self._name}] {method} {path} falló con {response.status_code}",
                    status_code=response.status_code,
                    method=method,
                    url=path,
                    body=response.text,
                )

            return response

        logger.error(f"[{self._name}] {method} {path}: demasiados reintentos ({self._max_retries})")
        raise RateLimitExceededError(method, path, self._max_retries)

    def retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Segundos a esperar antes del siguiente intento."""
        raw = response.headers.get(RATE_LIMIT_HEADER)
        try:
            remaining = float(raw) if raw is not None else None
        except ValueError:
            remaining = None

        # Piso: exponencial acotado, también con pista "0"
        backoff = min(self._max_backoff_s, self._min_backoff_s * (2 ** attempt))
        base = max(remaining or 0.0, backoff)

        jitter = base * 0.1 * self._jitter()
        return base + jitter + self._additional_delay_s

    async def get_json(self, path: str, *, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        response = await self.request("GET", path, params=params)
        return response.json()

    async def iter_collection(
        self,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        page_size: int = COLLECTION_PAGE_SIZE,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Itera una colección paginada (`items`, `total`) con limit/skip.

        Termina cuando `skip >= total` o la página viene vacía.
        """
        skip = 0
        while True:
            query = dict(params or {})
            query["limit"] = page_size
            query["skip"] = skip

            payload = await self.get_json(path, params=query)
            items = payload.get("items") or []
            for item in items:
                yield item

            skip += len(items)
            total = payload.get("total", 0)
            if not items or skip >= total:
                break

    async def close(self) -> None:
        await self._client.aclose()
