"""
Punto de entrada del servidor de webhooks (FastAPI).
Configura la aplicación, middlewares, rutas y eventos.
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from loguru import logger

from content_sync.api.middlewares.error_handler import ErrorHandlerMiddleware
from content_sync.api.v1.router import api_router
from content_sync.core.config import settings
from content_sync.core.events import shutdown_handler, startup_handler
from content_sync.shared.exceptions.base import AppException


def create_application() -> FastAPI:
    """
    Factory para crear y configurar la aplicación FastAPI.

    Returns:
        FastAPI: Instancia configurada de la aplicación
    """
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Receptor de webhooks Contentful -> PostgreSQL",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware personalizado para manejo de errores
    application.add_middleware(ErrorHandlerMiddleware)

    # Registrar eventos de inicio y cierre
    application.add_event_handler("startup", startup_handler(application))
    application.add_event_handler("shutdown", shutdown_handler(application))

    # Incluir routers de la API
    application.include_router(api_router, prefix="/api")

    # Errores de la aplicación: el emisor del webhook espera {type, message}
    @application.exception_handler(AppException)
    async def app_exception_handler(request, exc: AppException):
        logger.error(f"[{exc.error_code}] {exc.message}")
        return JSONResponse(
            status_code=500,
            content={
                "type": "fault",
                "message": exc.message,
                "error": exc.error_code,
            }
        )

    # Health check endpoint
    @application.get("/health", tags=["Health"])
    async def health_check():
        """Endpoint para verificar el estado de la aplicación."""
        return {
            "status": "healthy",
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT
        }

    return application


# Crear instancia de la aplicación
app = create_application()
