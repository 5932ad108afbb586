"""
Tópicos de webhooks de Contentful.

Formato: `ContentManagement.<Entidad>.<acción>`, p.ej. `ContentManagement.Entry.publish`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


TOPIC_HEADER = "X-Contentful-Topic"

ENTITY_ENTRY = "Entry"
ENTITY_ASSET = "Asset"

ACTION_PUBLISH = "publish"
ACTION_UNPUBLISH = "unpublish"
ACTION_SAVE = "save"
ACTION_AUTO_SAVE = "auto_save"
ACTION_CREATE = "create"
ACTION_ARCHIVE = "archive"
ACTION_UNARCHIVE = "unarchive"
ACTION_DELETE = "delete"

# `sys.type` de los payloads de unpublish/delete: solo `sys`, sin `fields`
DELETED_ENTRY_TYPE = "DeletedEntry"

# Acciones que reimportan la entrada sujeta a la guardia de frescura
ENTRY_REIMPORT_ACTIONS = frozenset({
    ACTION_UNPUBLISH,
    ACTION_SAVE,
    ACTION_AUTO_SAVE,
    ACTION_CREATE,
    ACTION_UNARCHIVE,
})


@dataclass(frozen=True)
class WebhookTopic:
    namespace: str
    entity: str
    action: str

    @classmethod
    def parse(cls, topic: Optional[str]) -> Optional["WebhookTopic"]:
        """Retorna None si el tópico no tiene el formato esperado."""
        if not topic:
            return None
        parts = topic.strip().split(".")
        if len(parts) != 3 or not all(parts):
            return None
        return cls(namespace=parts[0], entity=parts[1], action=parts[2])

    def __str__(self) -> str:
        return f"{self.namespace}.{self.entity}.{self.action}"


def is_entry_stub(payload: dict[str, Any]) -> bool:
    """True si el payload no trae el contenido de la entrada."""
    sys = payload.get("sys") or {}
    return sys.get("type") == DELETED_ENTRY_TYPE or "fields" not in payload
