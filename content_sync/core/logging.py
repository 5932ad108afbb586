"""
Configuracion de logging (loguru) para CLI y servidor de webhooks.
"""
import sys
from pathlib import Path

from loguru import logger

from content_sync.core.config import Settings


_configured = False


def configure_logging(settings: Settings, *, file_sink: bool = True) -> None:
    """
    Configura los sinks de loguru una sola vez por proceso.

    - stderr con el nivel configurado
    - archivo con rotacion (si LOG_FILE esta definido)
    """
    global _configured
    if _configured:
        return

    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)

    if file_sink and settings.LOG_FILE:
        Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            level=settings.LOG_LEVEL
        )

    _configured = True
