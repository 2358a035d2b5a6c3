"""
Dependencias inyectables de FastAPI.
Uso: añadir como parámetro en la firma del endpoint con Depends().
En tests se sustituyen con app.dependency_overrides[get_pipedrive_client].
"""

from collections.abc import AsyncIterator

from fastapi import Depends

from core.config import Settings, get_settings
from integrations.pipedrive_client import PipedriveClient
from services.crm_actions import ActionDispatcher
from services.intent_backend import IntentBackend

# ---------------------------------------------------------------------------
# Cliente Pipedrive (uno por petición, se cierra al terminar)
# ---------------------------------------------------------------------------


async def get_pipedrive_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[PipedriveClient]:
    async with PipedriveClient(settings.pipedrive) as client:
        yield client


# ---------------------------------------------------------------------------
# Servicios
# ---------------------------------------------------------------------------


def get_dispatcher(
    client: PipedriveClient = Depends(get_pipedrive_client),
    settings: Settings = Depends(get_settings),
) -> ActionDispatcher:
    return ActionDispatcher(client, settings)


def get_intent_backend(
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
) -> IntentBackend:
    return IntentBackend(dispatcher, settings)
