"""
Backend de intents para el asistente: traduce un intent "grueso"
(conteo_simple, riesgo, dashboard...) en una o varias acciones sobre Pipedrive.

Devuelve solo `datos`; el envelope { ok, intent, datos, metadata } lo monta el router.
Los errores se lanzan tipados (core.errors) y se capturan en la capa HTTP.
"""

from typing import Any

import structlog

from core.config import Settings
from core.errors import (
    ConfirmationRequiredError,
    MissingParameterError,
    UnsupportedActionError,
    UnsupportedIntentError,
)
from services.crm_actions import ActionDispatcher
from services.deal_pagination import drain_all_deals

logger = structlog.get_logger(__name__)

# tipo de modificación → acción del dispatcher
MODIFICATION_ACTIONS: dict[str, str] = {
    "create_deal": "createDeal",
    "update_deal": "updateDeal",
    "move_deal": "moveDeal",
    "add_note": "addNote",
}


def resolve_account_id(contexto_usuario: dict[str, Any]) -> Any:
    return (
        contexto_usuario.get("account_id")
        or contexto_usuario.get("tenant_id")
        or contexto_usuario.get("user_id")
        or None
    )


class IntentBackend:
    def __init__(self, dispatcher: ActionDispatcher, settings: Settings) -> None:
        self._dispatcher = dispatcher
        self._settings = settings
        self._handlers = {
            "conteo_simple": self._pipeline_totals,
            "dashboard": self._pipeline_totals,
            "lista_datos": self._deal_page,
            "analisis": self._all_deals,
            "auditoria_crm_pwc": self._all_deals,
            "riesgo": self._open_deals,
            "productividad": self._activities,
            "modificacion": self._modification,
        }

    async def handle(
        self,
        intent: str,
        contexto_usuario: dict[str, Any] | None = None,
        parametros: dict[str, Any] | None = None,
    ) -> dict:
        handler = self._handlers.get(intent)
        if handler is None:
            raise UnsupportedIntentError(intent)
        contexto = contexto_usuario or {}
        account_id = resolve_account_id(contexto)
        logger.info("crm.intent", intent=intent, account_id=account_id)
        return await handler(contexto, parametros or {}, account_id)

    # -----------------------------------------------------------------------
    # Intents de lectura
    # -----------------------------------------------------------------------

    async def _pipeline_totals(self, contexto: dict, parametros: dict, account_id: Any) -> dict:
        pipeline = await self._dispatcher.dispatch(
            "analyzePipeline", {"statuses": parametros.get("statuses")}
        )
        return {"totals": pipeline["totals"], "meta": pipeline["meta"], "account_id": account_id}

    async def _deal_page(self, contexto: dict, parametros: dict, account_id: Any) -> dict:
        page = await self._dispatcher.dispatch(
            "listDeals",
            {
                "status": parametros.get("status") or "open",
                "limit": parametros.get("limit") or 50,
                "start": parametros.get("start") or 0,
                "filter_id": parametros.get("filter_id"),
                "fields": parametros.get("fields"),
            },
        )
        return {"deals": page["items"], "pagination": page["pagination"], "account_id": account_id}

    async def _drain(self, status: str, contexto: dict, account_id: Any) -> dict:
        deals = await drain_all_deals(
            self._dispatcher,
            status=status,
            page_size=self._settings.CRM_DRAIN_PAGE_SIZE,
            max_pages=self._settings.CRM_DRAIN_MAX_PAGES,
        )
        return {
            "deals": deals,
            "total": len(deals),
            "contexto_usuario": contexto,
            "account_id": account_id,
        }

    async def _all_deals(self, contexto: dict, parametros: dict, account_id: Any) -> dict:
        return await self._drain(parametros.get("status") or "all_not_deleted", contexto, account_id)

    async def _open_deals(self, contexto: dict, parametros: dict, account_id: Any) -> dict:
        return await self._drain(parametros.get("status") or "open", contexto, account_id)

    async def _activities(self, contexto: dict, parametros: dict, account_id: Any) -> dict:
        user_id = parametros.get("user_id") or account_id
        activities = await self._dispatcher.dispatch(
            "listActivities",
            {
                "user_id": user_id,
                "limit": parametros.get("limit") or 100,
                "start": parametros.get("start") or 0,
            },
        )
        return {
            "activities": activities["items"],
            "pagination": activities["pagination"],
            "contexto_usuario": contexto,
            "account_id": account_id,
            "user_id": user_id,
        }

    # -----------------------------------------------------------------------
    # Modificaciones
    # -----------------------------------------------------------------------

    async def _modification(self, contexto: dict, parametros: dict, account_id: Any) -> dict:
        tipo = parametros.get("tipo")
        if not tipo:
            raise MissingParameterError("modificacion", ["tipo"])

        if self._settings.CRM_REQUIRE_CONFIRMATION and parametros.get("confirmado") is not True:
            raise ConfirmationRequiredError("Acción de modificación requiere confirmado=true")

        action = MODIFICATION_ACTIONS.get(tipo)
        if action is None:
            raise UnsupportedActionError(tipo)

        logger.info("crm.modification", tipo=tipo, action=action, account_id=account_id)
        resultado = await self._dispatcher.dispatch(action, parametros)
        return {"resultado": resultado, "account_id": account_id}
