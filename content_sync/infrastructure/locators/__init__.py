"""
Localizadores de contenido: export en memoria (offline) o APIs del CMS (online).
"""
from .offline_locator import OfflineContentLocator
from .online_locator import OnlineContentLocator

__all__ = ["OfflineContentLocator", "OnlineContentLocator"]
