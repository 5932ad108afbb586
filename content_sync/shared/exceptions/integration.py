"""
Errores de integración con servicios externos (Contentful, PostgreSQL).
"""
from typing import Optional

from content_sync.shared.exceptions.base import AppException


class ContentfulApiError(AppException):
    """Error permanente de Contentful (4xx/5xx distinto de 429). No se reintenta."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
        body: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            status_code=502,
            error_code="CONTENTFUL_API_ERROR",
            details={
                "upstream_status": status_code,
                "method": method,
                "url": url,
                "body": (body or "")[:2000],
            }
        )
        self.upstream_status = status_code


class RateLimitExceededError(ContentfulApiError):
    """Se agotó el presupuesto de reintentos ante respuestas 429."""

    def __init__(self, method: str, url: str, retries: int):
        super().__init__(
            message=f"[Contentful] {method} {url}: demasiados reintentos ({retries})",
            status_code=429,
            method=method,
            url=url,
        )
        self.error_code = "RATE_LIMIT_EXCEEDED"
        self.retries = retries


class DatabaseGatewayError(AppException):
    """Error del gateway de base de datos (fila inexistente, conexión)."""

    def __init__(self, message: str, details=None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="DATABASE_ERROR",
            details=details
        )
