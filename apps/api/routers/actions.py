"""
Router: /api/v1/pipedrive
POST → ejecuta una acción directa { action, params } contra Pipedrive

Cualquier otro método devuelve 405 con Allow: POST.
"""

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from core.dependencies import get_dispatcher
from core.errors import CRMError, classify_error
from core.payloads import ActionRequest, read_body
from core.responses import action_err, action_ok
from services.crm_actions import ActionDispatcher

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("")
async def run_action(
    request: Request,
    dispatcher: ActionDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    action: str | None = None
    try:
        body = await read_body(request, ActionRequest)
        action = body.action
        if not action:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=action_err('Falta parámetro "action" en el body', codigo="ERR_CRM_ACCION_FALTANTE"),
            )
        data = await dispatcher.dispatch(action, body.params or {})
    except CRMError as exc:
        log = logger.warning if exc.http_status < 500 else logger.error
        log("crm.action_error", action=action, codigo=exc.codigo, error=exc.message)
        return JSONResponse(
            status_code=exc.http_status,
            content=action_err(exc.message, action=action, codigo=exc.codigo),
        )
    except Exception as exc:
        logger.error("crm.action_unexpected", action=action, error=str(exc), exc_info=exc)
        codigo, http_status = classify_error(exc)
        return JSONResponse(
            status_code=http_status,
            content=action_err(str(exc) or "Error interno en api/pipedrive", action=action, codigo=codigo),
        )

    return JSONResponse(status_code=status.HTTP_200_OK, content=action_ok(action, data))


@router.api_route(
    "",
    methods=["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
async def action_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content=action_err("Método no permitido. Usa POST.", codigo="ERR_CRM_METHOD_NOT_ALLOWED"),
        headers={"Allow": "POST"},
    )
