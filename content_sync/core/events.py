"""
Manejadores de eventos de inicio y cierre del servidor de webhooks.
"""
from typing import Callable

from fastapi import FastAPI
from loguru import logger

from content_sync.core.bootstrap import build_services
from content_sync.core.config import settings
from content_sync.core.logging import configure_logging


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Construye los servicios y los deja en `app.state.services`."""
        try:
            configure_logging(settings)
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            if getattr(app.state, "services", None) is None:
                app.state.services = build_services(settings)

            logger.success("Servidor de webhooks iniciado correctamente")
        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera conexiones HTTP y de base de datos."""
        services = getattr(app.state, "services", None)
        if services is not None:
            await services.close()
            app.state.services = None
        logger.info("Aplicacion detenida")

    return shutdown
