"""
Helpers para los dos formatos de respuesta del backend CRM.

- Acciones directas (/pipedrive): { status, action, data } / { status, action, codigo, message }
- Intents (/crm-backend):         { ok, intent, datos, red_flags, alertas, metadata }
                                   { ok, intent, codigo, mensaje_usuario, detalle_tecnico, metadata }

Todos los endpoints deben usar estas funciones para garantizar coherencia.
"""

from datetime import datetime, timezone
from typing import Any

SOURCE = "pipedrive"

MENSAJE_USUARIO_GENERICO = "Ocurrió un error en el backend CRM. Intenta de nuevo o contacta soporte."

# Mensajes para el usuario final cuando el error es de la petición, no del backend
_MENSAJES_USUARIO: dict[str, str] = {
    "ERR_CRM_INTENT_FALTANTE": "La petición no indica qué quieres consultar en el CRM.",
    "ERR_CRM_INTENT_NO_SOPORTADO": "Esa consulta todavía no está soportada por el backend CRM.",
    "ERR_CRM_ACCION_NO_SOPORTADA": "Esa operación todavía no está soportada por el backend CRM.",
    "ERR_CRM_PARAMETRO_FALTANTE": "Faltan datos obligatorios para completar la operación en el CRM.",
    "ERR_CRM_CONFIRMACION_REQUERIDA": "Esta modificación del CRM necesita tu confirmación explícita.",
    "ERR_CRM_METHOD_NOT_ALLOWED": "Método no permitido. Usa POST.",
}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Acciones directas
# ---------------------------------------------------------------------------


def action_ok(action: str, data: Any) -> dict:
    return {"status": "success", "action": action, "data": data}


def action_err(message: str, action: str | None = None, codigo: str | None = None) -> dict:
    return {"status": "error", "action": action, "codigo": codigo, "message": message}


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------


def intent_ok(
    intent: str,
    datos: Any,
    red_flags: list | None = None,
    alertas: list | None = None,
    extra_meta: dict | None = None,
) -> dict:
    return {
        "ok": True,
        "intent": intent,
        "datos": datos,
        "red_flags": red_flags or [],
        "alertas": alertas or [],
        "metadata": {"fuente": SOURCE, "generado_en": now_iso(), **(extra_meta or {})},
    }


def intent_err(intent: str | None, detalle: str, codigo: str = "ERROR_BACKEND_CRM") -> dict:
    """Respuesta de error: siempre incluye el detalle técnico junto al mensaje genérico."""
    return {
        "ok": False,
        "intent": intent,
        "codigo": codigo,
        "mensaje_usuario": _MENSAJES_USUARIO.get(codigo, MENSAJE_USUARIO_GENERICO),
        "detalle_tecnico": detalle,
        "metadata": {"fuente": SOURCE, "generado_en": now_iso()},
    }
