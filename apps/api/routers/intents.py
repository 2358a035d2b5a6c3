"""
Router: /api/v1/crm-backend
POST → resuelve un intent del asistente { intent, contexto_usuario, parametros }

Respuesta rica: { ok, intent, datos, red_flags, alertas, metadata }.
Los errores se capturan aquí (capa más externa) y se clasifican en `codigo`.
"""

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from core.dependencies import get_intent_backend
from core.errors import CRMError, classify_error
from core.payloads import IntentRequest, read_body
from core.responses import intent_err, intent_ok
from services.intent_backend import IntentBackend

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("")
async def run_intent(
    request: Request,
    backend: IntentBackend = Depends(get_intent_backend),
) -> JSONResponse:
    intent: str | None = None
    try:
        body = await read_body(request, IntentRequest)
        intent = body.intent
        if not intent:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=intent_err(None, 'Falta "intent" en el body', "ERR_CRM_INTENT_FALTANTE"),
            )
        datos = await backend.handle(intent, body.contexto_usuario, body.parametros)
    except CRMError as exc:
        log = logger.warning if exc.http_status < 500 else logger.error
        log("crm.intent_error", intent=intent, codigo=exc.codigo, error=exc.message)
        return JSONResponse(
            status_code=exc.http_status,
            content=intent_err(intent, exc.message, exc.codigo),
        )
    except Exception as exc:
        logger.error("crm.intent_unexpected", intent=intent, error=str(exc), exc_info=exc)
        codigo, http_status = classify_error(exc)
        return JSONResponse(status_code=http_status, content=intent_err(intent, str(exc), codigo))

    return JSONResponse(status_code=status.HTTP_200_OK, content=intent_ok(intent, datos))


@router.api_route(
    "",
    methods=["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
async def intent_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content=intent_err(None, "Método no permitido. Usa POST.", "ERR_CRM_METHOD_NOT_ALLOWED"),
        headers={"Allow": "POST"},
    )
