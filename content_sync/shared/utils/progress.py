"""
Reporte periódico de progreso para operaciones largas (importación, listados S3).
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Union

from loguru import logger


ProgressCallback = Callable[[], Union[None, Awaitable[None]]]


@asynccontextmanager
async def progress_reporter(interval_s: float, callback: ProgressCallback) -> AsyncIterator[None]:
    """
    Ejecuta `callback` cada `interval_s` segundos mientras dure el bloque.

    El timer se cancela siempre al salir, tanto en éxito como ante una excepción.
    """

    async def _tick() -> None:
        while True:
            await asyncio.sleep(interval_s)
            result = callback()
            if asyncio.iscoroutine(result):
                await result

    task = asyncio.create_task(_tick())
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"El reporte de progreso terminó con error: {e}")
