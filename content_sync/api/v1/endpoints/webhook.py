"""
Endpoint receptor de webhooks de Contentful.

Solo traduce HTTP <-> caso de uso: el tópico llega en `X-Contentful-Topic`
y el cuerpo es la entidad (entrada o asset) en JSON.
"""
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from content_sync.application.use_cases.pull_use_cases import PullUseCases
from content_sync.infrastructure.contentful.webhooks import TOPIC_HEADER


router = APIRouter(prefix="/webhook", tags=["Webhook"])


def get_pull_use_cases(request: Request) -> PullUseCases:
    """Dependencia: casos de uso construidos en el startup."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Servicios no inicializados")
    return services.pull


@router.post("", status_code=status.HTTP_200_OK)
async def receive_webhook(
    request: Request,
    topic: Optional[str] = Header(default=None, alias=TOPIC_HEADER),
    pull: PullUseCases = Depends(get_pull_use_cases),
) -> Dict[str, Any]:
    """
    Procesa un evento de webhook de forma síncrona.

    Returns:
        dict: `{status, topic, statements}`
    """
    body = await request.body()
    if not body:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cuerpo vacío")

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"JSON inválido: {e}") from e

    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Se esperaba un objeto JSON")

    result = await pull.handle_webhook(topic or "", payload)
    return result.to_dict()
